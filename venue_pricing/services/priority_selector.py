"""
Priority Selector + Default-rate Cascade

선택 규칙:
    - 우선순위(priority)가 가장 높은 후보가 승리
    - 동일 우선순위는 선언 순서(declaration_index)가 빠른 후보가 승리 (감사 로그 재현성)
    - 후보가 없으면 SubLocation -> Location -> Customer 순으로 첫 번째 양수 기본 요금 사용
    - 양수 기본 요금도 없으면 None 반환 (0원 처리 금지, 호출자가 UNRESOLVED로 표면화)
"""

from typing import Optional, Sequence

from venue_pricing.models.pricing import (
    Candidate,
    CandidateSource,
    DefaultRate,
    HierarchyChain,
    HierarchyLevel,
    RejectedCandidate,
    Selection,
)


def _rank(candidate: Candidate):
    # priority 내림차순, 선언 순서 오름차순
    return (-candidate.priority, candidate.declaration_index)


def _rejection_reason(loser: Candidate, winner: Candidate) -> str:
    if loser.priority == winner.priority:
        return f"Tie at priority {loser.priority}, declared later"
    return f"Lower priority ({loser.priority} vs {winner.priority})"


def _win_reason(winner: Candidate, total: int) -> str:
    if winner.source == CandidateSource.SURGE:
        return f"Surge override (priority {winner.priority})"
    if winner.source == CandidateSource.RATESHEET:
        if total == 1:
            return "Only ratesheet matching this time slot"
        return f"Highest priority ({winner.priority})"
    raise ValueError(f"Unknown candidate source: {winner.source}")


def select_winner(candidates: Sequence[Candidate]) -> Selection:
    """
    Pick the single winning candidate for one hour.

    Parameters:
        candidates (Sequence[Candidate]): Candidates for the hour. Their `declaration_index`
            values define the tie-break order.

    Returns:
        Selection: The winner, the full candidate list, and each rejected candidate with
        the reason it lost. `winner` is None when `candidates` is empty.
    """
    if not candidates:
        return Selection(winner=None, reason="No ratesheets match this time slot")

    winner = min(candidates, key=_rank)
    rejected = [
        RejectedCandidate(candidate=c, reason=_rejection_reason(c, winner))
        for c in sorted(candidates, key=_rank)
        if c is not winner
    ]

    return Selection(
        winner=winner,
        reason=_win_reason(winner, len(candidates)),
        candidates=list(candidates),
        rejected=rejected,
    )


def resolve_default_rate(chain: HierarchyChain) -> Optional[DefaultRate]:
    """
    Walk the default-rate cascade SubLocation -> Location -> Customer.

    Returns:
        Optional[DefaultRate]: The first strictly positive default rate tagged with its
        originating level, or None when no level in the chain has one.
    """
    cascade = (
        (HierarchyLevel.SUBLOCATION, chain.sub_location.id, chain.sub_location.default_hourly_rate),
        (HierarchyLevel.LOCATION, chain.location.id, chain.location.default_hourly_rate),
        (HierarchyLevel.CUSTOMER, chain.customer.id, chain.customer.default_hourly_rate),
    )
    for level, entity_id, rate in cascade:
        if rate is not None and rate > 0:
            return DefaultRate(level=level, entity_id=entity_id, price_per_hour=rate)
    return None
