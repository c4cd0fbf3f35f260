"""Prompt templates (Jinja2) for the crawl and enrichment collaborators."""

from src.prompts.loader import PromptLoader, get_prompt_loader, load_prompt

__all__ = ["PromptLoader", "get_prompt_loader", "load_prompt"]
