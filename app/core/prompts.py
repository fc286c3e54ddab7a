"""
Centralized prompt management system for KnowledgeChat.

This module provides a registry for all LLM prompts used throughout the application.
Prompts are organized by domain and purpose, and can be parameterized with variables.
The default system prompt here is only used until an active SYSTEM prompt exists
in the database.
"""

from typing import Dict
import jinja2
import logging

logger = logging.getLogger(__name__)

# Configure Jinja2 environment for template rendering
_template_env = jinja2.Environment(
    autoescape=False,  # We don't need HTML escaping for prompts
    trim_blocks=True,
    lstrip_blocks=True
)

LANGUAGE_NAMES: Dict[str, str] = {
    "de": "German",
    "en": "English",
}

class PromptRegistry:
    """Registry for managing and accessing prompts throughout the application."""

    # Organized by domain/module and then by purpose
    PROMPTS = {
        "chat": {
            "default_system": """You are {{ system_name }}, a company-internal AI assistant.

IMPORTANT RULES:
1. Always answer in {{ language }}, unless the user explicitly writes in another language.
2. Base your answers primarily on the provided documents (context).
3. If you find no relevant information in the documents, say so honestly.
4. NEVER invent information or facts.
5. Always state which sources your information comes from.
6. Structure your answers clearly.
7. Ask follow-up questions when something is unclear.

ANSWER FORMAT:
- Start with a short summary (1-2 sentences)
- Then give details where relevant
- Name the sources you used at the end

You are helpful, professional and precise.""",
            "mode_rag_only": """IMPORTANT: You may ONLY use information from the provided documents.
If the documents contain no relevant information, say so clearly and do NOT invent anything.""",
            "mode_llm_only": """NOTE: No internal documents were found for this request.
You are answering from your general knowledge. Make clear that this answer is not based on documents.""",
            "mode_hybrid": """NOTE: Internal documents have been provided to you as context.
Prioritize information from these documents, but supplement it with your general knowledge where needed.
Clearly mark which information comes from the documents.""",
            "context_block": """=== INTERNAL DOCUMENTS (CONTEXT) ===

{% for chunk in chunks %}
[Document {{ loop.index }}: {{ chunk.document_name or "Unknown" }}{% if chunk.page_number %}, page {{ chunk.page_number }}{% endif %}]
{{ chunk.content }}

{% endfor %}
=== END CONTEXT ===
""",
            "user_turn_with_context": """{{ context }}

USER QUESTION:
{{ message }}""",
        },
        "follow_up": {
            "suggest_questions": """Based on the following question and answer, suggest {{ count }} short follow-up questions
the user might ask next. Write them in the same language as the question.
Return ONLY the questions, one per line, without numbering or bullet points.

QUESTION:
{{ question }}

ANSWER:
{{ answer }}""",
        },
        # Add more domains and prompts as needed
    }

    @classmethod
    def get_prompt(cls, domain: str, prompt_name: str, **kwargs) -> str:
        """
        Get a prompt by domain and name, with optional variable substitution.

        Args:
            domain: The domain or module the prompt belongs to
            prompt_name: The specific prompt identifier
            **kwargs: Variables to substitute in the prompt template

        Returns:
            The rendered prompt as a string
        """
        if domain not in cls.PROMPTS:
            logger.warning(f"Domain '{domain}' not found in prompt registry")
            return ""

        if prompt_name not in cls.PROMPTS[domain]:
            logger.warning(f"Prompt '{prompt_name}' not found in domain '{domain}'")
            return ""

        raw_prompt = cls.PROMPTS[domain][prompt_name]

        # If no variables to substitute, return the raw prompt
        if not kwargs:
            return raw_prompt

        # Render the template with the provided variables
        template = _template_env.from_string(raw_prompt)
        return template.render(**kwargs)

    @classmethod
    def register_prompt(cls, domain: str, prompt_name: str, prompt_template: str) -> None:
        """
        Register a new prompt or update an existing one.

        Args:
            domain: The domain or module the prompt belongs to
            prompt_name: The specific prompt identifier
            prompt_template: The prompt template to register
        """
        if domain not in cls.PROMPTS:
            cls.PROMPTS[domain] = {}

        cls.PROMPTS[domain][prompt_name] = prompt_template
        logger.info(f"Registered prompt '{domain}.{prompt_name}'")


def default_system_prompt(system_name: str = "KnowledgeChat", language_code: str = "de") -> str:
    """Render the built-in system prompt for a system name and language code"""
    return PromptRegistry.get_prompt(
        "chat",
        "default_system",
        system_name=system_name,
        language=LANGUAGE_NAMES.get(language_code, "German"),
    )

# Simple alias for brevity in imports
get_prompt = PromptRegistry.get_prompt
