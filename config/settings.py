"""
Settings Configuration
使用 Pydantic 进行配置验证和管理
"""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class SourceSettings(BaseSettings):
    """数据源通用配置"""
    user_agent: str = Field(default="ideator-bot/1.0 (internal tool)", description="User Agent")
    request_timeout: float = Field(default=15.0, description="请求超时时间(秒)")
    max_retries: int = Field(default=3, description="最大重试次数")
    retry_delay: float = Field(default=1.0, description="重试基础延迟(秒)")

    class Config:
        env_prefix = "SOURCES_"


class RedditSettings(BaseSettings):
    """Reddit 配置"""
    subreddits: List[str] = Field(
        default=[
            "SaaS",
            "startups",
            "Entrepreneur",
            "smallbusiness",
            "AppIdeas",
            "indiehackers",
            "microsaas",
            "sideproject",
            "advancedentrepreneur",
            "webdev",
            "programming",
            "ProductManagement",
            "growmybusiness",
        ],
        description="搜索的 subreddit 列表",
    )

    class Config:
        env_prefix = "REDDIT_"


class RSSSettings(BaseSettings):
    """RSS 订阅源配置"""
    feeds: List[str] = Field(
        default=[
            "https://hnrss.org/newest?q=startup",
            "https://hnrss.org/newest?q=saas",
            "https://www.producthunt.com/feed",
            "https://feeds.feedburner.com/TechCrunch/startups",
            "https://blog.ycombinator.com/feed/",
            "https://lobste.rs/rss",
            "https://dev.to/feed/tag/startup",
            "https://dev.to/feed/tag/saas",
            "https://dev.to/feed/tag/webdev",
            "https://www.betalist.com/feed",
            "https://nodeweekly.com/rss/",
            "https://javascriptweekly.com/rss/",
        ],
        description="RSS/Atom 订阅地址",
    )

    class Config:
        env_prefix = "RSS_"


class DevToSettings(BaseSettings):
    """Dev.to 配置"""
    tags: List[str] = Field(
        default=["startup", "saas", "webdev", "productivity", "ai"],
        description="抓取的文章标签",
    )

    class Config:
        env_prefix = "DEVTO_"


class WebScraperSettings(BaseSettings):
    """网页抓取配置"""
    urls: List[str] = Field(
        default=["https://www.indiehackers.com/", "https://microconf.com/blog"],
        description="抓取的页面地址",
    )

    class Config:
        env_prefix = "WEB_SCRAPER_"


class GitHubSettings(BaseSettings):
    """GitHub API 配置"""
    token: Optional[str] = Field(default=None, description="GitHub Token (可选, 提高限额)")

    class Config:
        env_prefix = "GITHUB_"


class StackExchangeSettings(BaseSettings):
    """Stack Exchange API 配置"""
    api_key: Optional[str] = Field(default=None, description="Stack Exchange API Key (可选)")
    site: str = Field(default="stackoverflow", description="站点")

    class Config:
        env_prefix = "STACKEXCHANGE_"


class GoogleTrendsSettings(BaseSettings):
    """Google Trends 配置"""
    geo: str = Field(default="US", description="地区代码")

    class Config:
        env_prefix = "GOOGLE_TRENDS_"


class LLMSettings(BaseSettings):
    """LLM 配置"""
    provider: str = Field(default="groq", description="LLM提供商: groq, openrouter, nvidia, deepseek, openai, anthropic")
    model_name: Optional[str] = Field(default=None, description="模型名称(不填则使用默认)")
    base_url: Optional[str] = Field(default=None, description="覆盖 OpenAI 兼容接口地址")
    temperature: float = Field(default=0.7, description="生成温度")
    max_tokens: int = Field(default=4096, description="最大生成token数")
    timeout: float = Field(default=120.0, description="请求超时时间(秒)")

    # API Keys
    groq_api_key: Optional[str] = Field(default=None, description="Groq API Key")
    openrouter_api_key: Optional[str] = Field(default=None, description="OpenRouter API Key")
    nvidia_api_key: Optional[str] = Field(default=None, description="NVIDIA NIM API Key")
    deepseek_api_key: Optional[str] = Field(default=None, description="DeepSeek API Key")
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API Key")
    anthropic_api_key: Optional[str] = Field(default=None, description="Anthropic API Key")

    class Config:
        env_prefix = "LLM_"


class PipelineSettings(BaseSettings):
    """流水线配置"""
    default_limit: int = Field(default=30, description="Discovery 默认结果数")
    research_digest_cap: int = Field(default=100, description="Research 摘要最多使用的结果数")
    digest_content_chars: int = Field(default=500, description="摘要中每条内容截断长度")
    citation_count: int = Field(default=10, description="每个 Idea 附带的引用数")
    snippet_chars: int = Field(default=200, description="引用片段截断长度")
    structured_max_retries: int = Field(default=2, description="结构化输出修复重试次数")

    class Config:
        env_prefix = "PIPELINE_"


class StorageSettings(BaseSettings):
    """存储配置"""
    backend: str = Field(default="memory", description="存储后端: memory, sqlite")
    db_path: str = Field(default="./data/ideator.db", description="SQLite 数据库路径")

    class Config:
        env_prefix = "STORAGE_"


class Settings(BaseSettings):
    """主配置类 - 聚合所有子配置"""

    # 子配置
    sources: SourceSettings = Field(default_factory=SourceSettings)
    reddit: RedditSettings = Field(default_factory=RedditSettings)
    rss: RSSSettings = Field(default_factory=RSSSettings)
    devto: DevToSettings = Field(default_factory=DevToSettings)
    web_scraper: WebScraperSettings = Field(default_factory=WebScraperSettings)
    github: GitHubSettings = Field(default_factory=GitHubSettings)
    stackexchange: StackExchangeSettings = Field(default_factory=StackExchangeSettings)
    google_trends: GoogleTrendsSettings = Field(default_factory=GoogleTrendsSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def load_from_env_file(cls, env_path: Optional[Path] = None) -> "Settings":
        """从指定的 .env 文件加载配置"""
        if env_path is None:
            # 默认查找 config/.env
            env_path = Path(__file__).parent / ".env"

        if env_path.exists():
            from dotenv import load_dotenv
            load_dotenv(env_path)

        return cls(
            sources=SourceSettings(),
            reddit=RedditSettings(),
            rss=RSSSettings(),
            devto=DevToSettings(),
            web_scraper=WebScraperSettings(),
            github=GitHubSettings(),
            stackexchange=StackExchangeSettings(),
            google_trends=GoogleTrendsSettings(),
            llm=LLMSettings(),
            pipeline=PipelineSettings(),
            storage=StorageSettings(),
        )


@lru_cache()
def get_settings() -> Settings:
    """获取全局配置单例"""
    return Settings.load_from_env_file()

