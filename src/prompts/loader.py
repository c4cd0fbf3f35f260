"""
Prompt Loader

crawl / enrichment 两个协作者发给 LLM 的提示词模板（Jinja2 + markdown）。
模板变量缺失时直接报错，避免把 "None" 之类的占位文本发给模型。
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, meta

TEMPLATES_DIR = Path(__file__).parent / "templates"


def _template_file(name: str) -> str:
    return name if name.endswith(".md") else f"{name}.md"


class PromptLoader:
    """Renders the ``.md`` templates of one directory."""

    def __init__(self, templates_dir: Optional[Path] = None):
        self.templates_dir = Path(templates_dir or TEMPLATES_DIR)
        self._env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            autoescape=False,
        )

    def load(self, template_name: str, **kwargs: Any) -> str:
        """
        Render *template_name* (``.md`` suffix optional).

        Raises:
            jinja2.TemplateNotFound: No such template.
            jinja2.UndefinedError: A variable the template uses was not passed.
        """
        template = self._env.get_template(_template_file(template_name))
        return template.render(**kwargs).strip()

    def variables(self, template_name: str) -> set[str]:
        """Names a template expects to be passed in."""
        source, _, _ = self._env.loader.get_source(self._env, _template_file(template_name))
        return meta.find_undeclared_variables(self._env.parse(source))

    def list_templates(self) -> list[str]:
        return sorted(p.stem for p in self.templates_dir.glob("*.md") if p.is_file())


@lru_cache(maxsize=1)
def get_prompt_loader() -> PromptLoader:
    return PromptLoader()


def load_prompt(template_name: str, **kwargs: Any) -> str:
    """
    用共享的 loader 渲染模板。

    Example:
        >>> load_prompt("crawl_jctc", limit=10, journal="...", site="pubs.acs.org")
    """
    return get_prompt_loader().load(template_name, **kwargs)
