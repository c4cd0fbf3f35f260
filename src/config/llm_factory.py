"""
LLM Factory

爬取（检索式）与翻译/摘要两个协作者共用的 chat model 构建入口。
每个 provider 一个构建函数，create_llm 按名称分发。
"""

import os
from typing import Callable, Optional, Union

import httpx
from langchain_anthropic import ChatAnthropic
from langchain_openai import ChatOpenAI

from src.config.settings import get_default_model_for_provider

ChatModel = Union[ChatOpenAI, ChatAnthropic]

# 单次请求、无 streaming
DEFAULT_TIMEOUT = httpx.Timeout(connect=30.0, read=120.0, write=30.0, pool=30.0)

ALIYUN_BASE_URL = "https://dashscope.aliyuncs.com/compatible-mode/v1"
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
ONLINE_SUFFIX = ":online"

# 支持联网搜索的 provider
SEARCH_PROVIDERS = frozenset({"aliyun", "openrouter"})

# 简短别名 -> provider 侧模型名
MODEL_ALIASES = {
    "aliyun": {
        "qwen-max": "qwen-max",
        "qwen3-max": "qwen3-max",
        "deepseek": "deepseek-v3.2",
        "kimi": "kimi-k2.5",
    },
    "openrouter": {
        "claude-sonnet-4.5": "anthropic/claude-sonnet-4.5",
        "gpt-5": "openai/gpt-5",
        "gemini-3-flash": "google/gemini-3-flash-preview",
    },
}


def resolve_model_name(provider: str, model_name: Optional[str]) -> str:
    """别名展开；未指定时使用 provider 的默认模型。"""
    if not model_name:
        return get_default_model_for_provider(provider)
    return MODEL_ALIASES.get(provider, {}).get(model_name, model_name)


def _require_env(*names: str) -> str:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    raise ValueError(f"{' or '.join(names)} environment variable not set")


def _build_aliyun(model: str, temperature: float, max_retries: int, enable_search: bool) -> ChatModel:
    # DashScope 兼容模式通过 extra_body 打开联网搜索
    extra_body = {"enable_search": True} if enable_search else None
    return ChatOpenAI(
        model=model,
        api_key=_require_env("ALIYUN_API_KEY", "DASHSCOPE_API_KEY"),
        base_url=os.getenv("ALIYUN_API_BASE_URL", ALIYUN_BASE_URL),
        temperature=temperature,
        max_retries=max_retries,
        timeout=DEFAULT_TIMEOUT,
        extra_body=extra_body,
    )


def _build_openai(model: str, temperature: float, max_retries: int, enable_search: bool) -> ChatModel:
    return ChatOpenAI(model=model, temperature=temperature, max_retries=max_retries, timeout=DEFAULT_TIMEOUT)


def _build_anthropic(model: str, temperature: float, max_retries: int, enable_search: bool) -> ChatModel:
    return ChatAnthropic(model=model, temperature=temperature, max_retries=max_retries, timeout=DEFAULT_TIMEOUT)


def _build_openrouter(model: str, temperature: float, max_retries: int, enable_search: bool) -> ChatModel:
    # OpenRouter 的 ":online" 变体会先做 web 检索再回答
    if enable_search and not model.endswith(ONLINE_SUFFIX):
        model = f"{model}{ONLINE_SUFFIX}"
    return ChatOpenAI(
        model=model,
        api_key=_require_env("OPENROUTER_API_KEY"),
        base_url=OPENROUTER_BASE_URL,
        temperature=temperature,
        max_retries=max_retries,
        timeout=DEFAULT_TIMEOUT,
        default_headers={
            "HTTP-Referer": os.getenv("OPENROUTER_REFERER", ""),
            "X-Title": os.getenv("OPENROUTER_APP_TITLE", "JCTC Scout"),
        },
    )


_BUILDERS: dict[str, Callable[[str, float, int, bool], ChatModel]] = {
    "aliyun": _build_aliyun,
    "openai": _build_openai,
    "anthropic": _build_anthropic,
    "openrouter": _build_openrouter,
}


def create_llm(
    model_provider: str = "aliyun",
    model_name: Optional[str] = None,
    temperature: float = 0.2,
    max_retries: int = 3,
    enable_search: bool = False,
) -> ChatModel:
    """
    创建 LLM 实例。

    Args:
        model_provider: aliyun / openai / anthropic / openrouter。
        model_name: 模型名或别名，未提供时使用 provider 默认值。
        temperature: 翻译与检索都希望输出稳定，默认偏低。
        max_retries: SDK 层面的自动重试次数。
        enable_search: 是否启用联网搜索（仅 SEARCH_PROVIDERS 支持）。
            检索式爬取依赖它，否则模型只能凭记忆编造文章。

    Raises:
        ValueError: provider 未知、缺少必要的 API key，或该 provider 不支持联网搜索。
    """
    builder = _BUILDERS.get(model_provider)
    if builder is None:
        raise ValueError(f"Unknown provider: {model_provider}")
    if enable_search and model_provider not in SEARCH_PROVIDERS:
        raise ValueError(
            f"enable_search is only supported for {', '.join(sorted(SEARCH_PROVIDERS))}, "
            f"not '{model_provider}'"
        )
    return builder(resolve_model_name(model_provider, model_name), temperature, max_retries, enable_search)
