"""
Schemas - Structured output definitions for LLM responses.

Uses Pydantic for validation and JSON schema generation. Each schema
has a conservative fallback used when the model's output cannot be
obtained or parsed.
"""

from typing import List

from pydantic import BaseModel, Field


# =============================================================================
# CLASSIFICATION
# =============================================================================

class ClassificationResult(BaseModel):
    """Whether a task can run directly and whether it continues the last one."""
    is_simple_task: bool
    is_followup_task: bool = False
    
    @classmethod
    def fallback(cls) -> "ClassificationResult":
        """Complex, not a follow-up: the safe route when classification fails."""
        return cls(is_simple_task=False, is_followup_task=False)


# =============================================================================
# PLANNING
# =============================================================================

class PlanStep(BaseModel):
    """One high-level step of a plan."""
    action: str = Field(min_length=1)
    reasoning: str = ""


class Plan(BaseModel):
    """Ordered steps produced by the planner."""
    steps: List[PlanStep] = Field(default_factory=list)
    
    @property
    def is_empty(self) -> bool:
        return not self.steps
    
    def truncated(self, max_steps: int) -> "Plan":
        if len(self.steps) <= max_steps:
            return self
        return Plan(steps=self.steps[:max_steps])


# =============================================================================
# VALIDATION
# =============================================================================

class ValidationResult(BaseModel):
    """Validator verdict on whether the task is done."""
    is_complete: bool
    reasoning: str = ""
    suggestions: List[str] = Field(default_factory=list)
    
    @classmethod
    def fallback(cls, error: str) -> "ValidationResult":
        return cls(is_complete=False, reasoning=f"Validation failed: {error}", suggestions=[])
