"""
Discovery Phase
并发抓取数据源并按来源均衡结果
"""
import logging
from typing import Optional

from config import PipelineSettings, get_settings
from core import PipelinePhase
from sources import SourceOptions, SourceRegistry

from .helpers import Emit, balance_source_results, source_breakdown
from .schemas import DiscoveryInput, DiscoveryOutput


logger = logging.getLogger(__name__)


async def run_discovery(
    discovery_input: DiscoveryInput,
    registry: SourceRegistry,
    emit: Emit,
    *,
    settings: Optional[PipelineSettings] = None,
) -> DiscoveryOutput:
    """
    Discovery 阶段

    Args:
        discovery_input: 查询、数据源列表 (空列表表示全部) 与结果上限
        registry: 数据源注册表
        emit: 事件回调

    Returns:
        DiscoveryOutput (空结果不视为错误)
    """
    settings = settings or get_settings().pipeline
    emit(f'Starting discovery for "{discovery_input.query}"', phase=PipelinePhase.DISCOVERY)

    limit = discovery_input.limit or settings.default_limit
    raw_results = await registry.fetch_all(
        SourceOptions(query=discovery_input.query, limit=limit),
        discovery_input.sources or None,
    )

    results = balance_source_results(raw_results, limit)
    breakdown = source_breakdown(results)

    logger.info(
        f"[Discovery] {len(results)} results from {len(breakdown)} sources "
        f"({len(raw_results)} fetched)"
    )
    emit(f"Found {len(results)} results", phase=PipelinePhase.DISCOVERY, data=breakdown)

    return DiscoveryOutput(
        results=results,
        total_fetched=len(raw_results),
        source_breakdown=breakdown,
    )
