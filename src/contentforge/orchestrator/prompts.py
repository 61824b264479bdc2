"""Prompt templates for generation turns."""

from ..conversation import Message, to_context_string

ENRICHED_PROMPT_TEMPLATE = """
Previous conversation context:
{context}

User input: {user_input}

First, determine if this is a content generation request or a chat conversation.
If it's a content generation request, focus on creating high-quality, structured content.
If it's a chat conversation, provide a detailed and helpful response.
For content editing requests, modify the existing content according to the request.
If the request is not clear, provide a detailed explanation and ask for clarification.
Respond in this format:
TASK_TYPE: [GENERATE | CHAT | EDIT]
[Your response]
"""

ACKNOWLEDGE_TEMPLATE = (
    'You\'ve just {action} content based on this request: "{user_input}"\n'
    "Please provide a helpful response acknowledging the action and asking if "
    "they'd like to refine it further."
)


def build_enriched_prompt(context: list[Message], user_input: str) -> str:
    return ENRICHED_PROMPT_TEMPLATE.format(
        context=to_context_string(context),
        user_input=user_input,
    )


def build_acknowledgment_prompt(action: str, user_input: str) -> str:
    """`action` is the past participle shown to the model ("generated", "edited")."""
    return ACKNOWLEDGE_TEMPLATE.format(action=action, user_input=user_input)
