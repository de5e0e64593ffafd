"""
Prompts module - LLM prompt templates for classification, planning,
execution and validation.
"""

from browser_agent.prompts.system_prompts import (
    AGENT_SYSTEM_PROMPT,
    CLASSIFIER_SYSTEM_PROMPT,
    CLASSIFIER_TASK_PROMPT,
    PLANNER_SYSTEM_PROMPT,
    PLANNER_TASK_PROMPT,
    PLANNER_FEEDBACK_TEMPLATE,
    VALIDATOR_SYSTEM_PROMPT,
    VALIDATOR_TASK_PROMPT,
    SIMPLE_ATTEMPT_INSTRUCTION,
    VALIDATION_FEEDBACK_MESSAGE,
    SIMPLE_EXHAUSTED_MESSAGE,
    MULTI_STEP_EXHAUSTED_MESSAGE,
    build_agent_system_prompt,
    format_browser_state,
)

__all__ = [
    "AGENT_SYSTEM_PROMPT",
    "CLASSIFIER_SYSTEM_PROMPT",
    "CLASSIFIER_TASK_PROMPT",
    "PLANNER_SYSTEM_PROMPT",
    "PLANNER_TASK_PROMPT",
    "PLANNER_FEEDBACK_TEMPLATE",
    "VALIDATOR_SYSTEM_PROMPT",
    "VALIDATOR_TASK_PROMPT",
    "SIMPLE_ATTEMPT_INSTRUCTION",
    "VALIDATION_FEEDBACK_MESSAGE",
    "SIMPLE_EXHAUSTED_MESSAGE",
    "MULTI_STEP_EXHAUSTED_MESSAGE",
    "build_agent_system_prompt",
    "format_browser_state",
]
