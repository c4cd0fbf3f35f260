"""
Structured Outputs for Enrichment

定义翻译/摘要协作者的结构化输出模型，LLM 与外部 HTTP 服务共用同一形状。
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class EnrichmentResult(BaseModel):
    """
    单篇论文的中文翻译与摘要。

    summary_cn 为必填；title_cn / abstract_cn 缺失时保留文章原有值。
    """

    title_cn: Optional[str] = Field(default=None, description="标题的简体中文翻译")
    abstract_cn: Optional[str] = Field(default=None, description="摘要的完整简体中文翻译")
    summary_cn: str = Field(description="1-2 句学术风格的中文总结")

    model_config = ConfigDict(extra="ignore")
