"""
Pipeline Helpers
结果均衡、创意度换算、候选 Idea 的 key 分配与关联
"""
import logging
import re
from typing import Callable, Dict, List, Optional, Sequence, TypeVar

from core import SourceResult

from .schemas import CandidateIdea


logger = logging.getLogger(__name__)

T = TypeVar("T")

# emit(message, *, phase=None, status=RUNNING, data=None)
Emit = Callable[..., None]

MIN_TEMPERATURE = 0.2
RESEARCH_MIN_TEMPERATURE = 0.3


def balance_source_results(results: Sequence[SourceResult], total_limit: int) -> List[SourceResult]:
    """
    按数据源轮询取样，避免单一数据源占满结果

    分组顺序为首次出现顺序；每轮每组取一条，直到达到上限或所有组取尽。
    """
    groups: Dict[str, List[SourceResult]] = {}
    for result in results:
        groups.setdefault(result.source_type, []).append(result)

    balanced: List[SourceResult] = []
    depth = 0
    while len(balanced) < total_limit:
        added = False
        for items in groups.values():
            if depth < len(items):
                balanced.append(items[depth])
                added = True
                if len(balanced) >= total_limit:
                    break
        if not added:
            break
        depth += 1
    return balanced


def source_breakdown(results: Sequence[SourceResult]) -> Dict[str, int]:
    breakdown: Dict[str, int] = {}
    for result in results:
        breakdown[result.source_type] = breakdown.get(result.source_type, 0) + 1
    return breakdown


def creativity_to_temperature(creativity: Optional[float]) -> Optional[float]:
    """0..100 的创意度线性映射到 0.2..1.2 的采样温度"""
    if creativity is None:
        return None
    clamped = max(0.0, min(100.0, float(creativity)))
    return round(MIN_TEMPERATURE + clamped / 100.0, 4)


def research_temperature(temperature: Optional[float]) -> Optional[float]:
    """Research 使用略低的温度，下限 0.3"""
    if temperature is None:
        return None
    return max(RESEARCH_MIN_TEMPERATURE, temperature - 0.1)


def normalize_name(name: str) -> str:
    return re.sub(r"\s+", " ", str(name or "")).strip().lower()


def assign_idea_keys(ideas: Sequence[CandidateIdea]) -> List[CandidateIdea]:
    return [idea.model_copy(update={"idea_key": f"idea-{i}"}) for i, idea in enumerate(ideas, 1)]


def match_to_ideas(ideas: Sequence[CandidateIdea], entries: Sequence[T], label: str) -> Dict[str, T]:
    """
    将 LLM 返回的条目关联到候选 Idea

    先按 ideaKey 精确匹配，再按规范化名称 (忽略大小写与多余空白) 匹配；
    每个条目最多被使用一次。未匹配的 Idea 记录警告并不出现在结果中。
    """
    by_key: Dict[str, T] = {}
    by_name: Dict[str, List[T]] = {}
    for entry in entries:
        key = getattr(entry, "idea_key", None)
        if key and key not in by_key:
            by_key[key] = entry
        by_name.setdefault(normalize_name(getattr(entry, "idea_name", "")), []).append(entry)

    used = set()
    matched: Dict[str, T] = {}
    for idea in ideas:
        entry = by_key.get(idea.idea_key) if idea.idea_key else None
        if entry is None or id(entry) in used:
            entry = next(
                (e for e in by_name.get(normalize_name(idea.name), []) if id(e) not in used),
                None,
            )
        if entry is None:
            logger.warning(f"[{label}] No entry matched idea '{idea.name}' ({idea.idea_key})")
            continue
        used.add(id(entry))
        matched[idea.idea_key or normalize_name(idea.name)] = entry
    return matched


def idea_lookup_key(idea: CandidateIdea) -> str:
    return idea.idea_key or normalize_name(idea.name)
