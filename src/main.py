"""
JCTC Scout Command Line

Usage:
    python -m src.main refresh          # crawl, translate new articles, print the cache
    python -m src.main list             # print the cache without crawling
    python -m src.main retry <id>       # retry translation for one article
    python -m src.main clear            # wipe the cache
    python -m src.main serve            # run the HTTP API
"""

import asyncio
import sys
from dataclasses import replace
from typing import Optional

from dotenv import load_dotenv

from src.api.services.scout_service import ScoutService
from src.config.settings import (
    AppSettings,
    get_app_settings,
    get_default_model_for_provider,
    resolve_llm_settings,
)
from src.scout import Article, CrawlError, EnrichmentState, RefreshStage
from src.utils.logging_config import configure_logging


def _print_article(index: int, article: Article) -> None:
    marker = " [NEW]" if article.is_new else ""
    print(f"\n{index}. {article.title}{marker}")
    if article.title_cn:
        print(f"   {article.title_cn}")
    if article.authors:
        print(f"   Authors: {article.authors}")
    print(f"   Date: {article.date}")
    print(f"   URL: {article.url}")
    if article.summary_cn:
        print(f"   摘要: {article.summary_cn}")
    elif article.enrichment == EnrichmentState.FAILED:
        print("   (translation failed, run `retry` to try again)")


def _print_articles(articles: list[Article]) -> None:
    if not articles:
        print("No articles cached. Try `refresh`.")
        return

    new_count = sum(1 for a in articles if a.is_new)
    print(f"\n## JCTC ASAP articles ({len(articles)} cached, {new_count} new)")
    for i, article in enumerate(articles, 1):
        _print_article(i, article)


def _resolve_settings(model_provider: Optional[str], model_name: Optional[str]) -> AppSettings:
    settings = get_app_settings()
    if model_provider or model_name:
        settings = replace(
            settings,
            llm=resolve_llm_settings(
                provider_override=model_provider,
                model_name_override=model_name,
            ),
        )
    return settings


async def run_command(command: str, settings: AppSettings, article_id: Optional[str] = None) -> int:
    """Run one scout command; returns the process exit code."""
    service = ScoutService.from_settings(settings)
    try:
        if command == "refresh":
            print("=" * 60)
            print("JCTC Scout")
            model = settings.llm.model_name or get_default_model_for_provider(settings.llm.provider)
            print(f"Provider: {settings.llm.provider} | Model: {model}")
            print("=" * 60)
            try:
                articles = await service.refresh(lambda stage: print(f"… {stage}"))
            except CrawlError as e:
                print(f"Scan failed: {e}", file=sys.stderr)
                return 1
            print(f"… {RefreshStage.COMPLETE.label()}")
            _print_articles(articles)
        elif command == "list":
            _print_articles(await service.list_articles())
        elif command == "retry":
            article = await service.retry_enrichment(article_id or "")
            if article is None:
                print(f"Unknown article: {article_id}", file=sys.stderr)
                return 1
            _print_article(1, article)
        elif command == "clear":
            await service.clear()
            print("Cache cleared.")
        else:
            raise ValueError(f"Unknown command: {command}")
    finally:
        await service.close()
    return 0


def run_cli(argv: Optional[list[str]] = None) -> None:
    """Entry point for the ``jctc-scout`` console script."""
    import argparse

    parser = argparse.ArgumentParser(
        description="JCTC Scout - recent JCTC articles with Chinese translations"
    )
    parser.add_argument(
        "command",
        choices=["refresh", "list", "retry", "clear", "serve"],
        help="Action to run",
    )
    parser.add_argument(
        "article_id",
        nargs="?",
        help="Article id (its URL) for `retry`",
    )
    parser.add_argument(
        "-p", "--model-provider",
        type=str,
        default=None,
        choices=["aliyun", "anthropic", "openai", "openrouter"],
        help="LLM provider (default: MODEL_PROVIDER or aliyun)",
    )
    parser.add_argument(
        "-m", "--model-name",
        type=str,
        default=None,
        help="Model name (e.g. 'qwen3.5-plus' for aliyun)",
    )
    args = parser.parse_args(argv)

    if args.command == "retry" and not args.article_id:
        parser.error("retry requires an article id")

    load_dotenv()

    if args.command == "serve":
        from src.api.main import main as serve

        serve()
        return

    configure_logging()
    try:
        settings = _resolve_settings(args.model_provider, args.model_name)
    except ValueError as e:
        parser.error(str(e))

    sys.exit(asyncio.run(run_command(args.command, settings, article_id=args.article_id)))


if __name__ == "__main__":
    run_cli()
