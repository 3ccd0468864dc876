"""
Priority Selector + Default-rate Cascade 단위 테스트

실행: pytest tests/services/test_priority_selector.py -v
"""
from decimal import Decimal

from venue_pricing.models.pricing import (
    Candidate,
    CandidateSource,
    Customer,
    HierarchyChain,
    HierarchyLevel,
    Location,
    SubLocation,
)
from venue_pricing.services.priority_selector import resolve_default_rate, select_winner


def candidate(rs_id, priority, index, price=50, source=CandidateSource.RATESHEET):
    return Candidate(
        source=source,
        ratesheet_id=rs_id,
        ratesheet_name=rs_id,
        level=HierarchyLevel.SUBLOCATION,
        priority=priority,
        price_per_hour=Decimal(price),
        declaration_index=index,
    )


def chain_with(sub=None, loc=None, cust=None):
    as_rate = lambda v: None if v is None else Decimal(str(v))
    return HierarchyChain(
        sub_location=SubLocation(id="sl-1", location_id="loc-1", default_hourly_rate=as_rate(sub)),
        location=Location(id="loc-1", customer_id="cust-1", default_hourly_rate=as_rate(loc)),
        customer=Customer(id="cust-1", default_hourly_rate=as_rate(cust)),
        timezone="America/Detroit",
    )


class TestSelectWinner:
    """우선순위 선택"""

    def test_empty_has_no_winner(self):
        selection = select_winner([])
        assert selection.winner is None
        assert selection.rejected == []

    def test_single_candidate(self):
        selection = select_winner([candidate("rs-a", 500, 0)])
        assert selection.winner.ratesheet_id == "rs-a"
        assert selection.reason == "Only ratesheet matching this time slot"

    def test_highest_priority_wins(self):
        selection = select_winner([candidate("rs-low", 500, 0), candidate("rs-high", 700, 1)])
        assert selection.winner.ratesheet_id == "rs-high"
        assert selection.reason == "Highest priority (700)"
        assert [r.candidate.ratesheet_id for r in selection.rejected] == ["rs-low"]
        assert selection.rejected[0].reason == "Lower priority (500 vs 700)"

    def test_tie_first_declared_wins(self):
        """동일 우선순위 500, 선언 순서 [B, A] -> B"""
        selection = select_winner([candidate("B", 500, 0), candidate("A", 500, 1)])
        assert selection.winner.ratesheet_id == "B"
        assert selection.rejected[0].reason == "Tie at priority 500, declared later"

    def test_tie_uses_declaration_index_not_list_position(self):
        selection = select_winner([candidate("A", 500, 3), candidate("B", 500, 1)])
        assert selection.winner.ratesheet_id == "B"

    def test_deterministic(self):
        candidates = [candidate("rs-a", 500, 0), candidate("rs-b", 600, 1), candidate("rs-c", 600, 2)]
        winners = {select_winner(candidates).winner.ratesheet_id for _ in range(5)}
        assert winners == {"rs-b"}

    def test_raising_loser_priority_flips_result(self):
        before = select_winner([candidate("rs-a", 700, 0), candidate("rs-b", 500, 1)])
        after = select_winner([candidate("rs-a", 700, 0), candidate("rs-b", 701, 1)])
        assert before.winner.ratesheet_id == "rs-a"
        assert after.winner.ratesheet_id == "rs-b"

    def test_surge_reason(self):
        selection = select_winner([
            candidate("rs-a", 700, 0),
            candidate("surge-1", 10000, 1, price="1.25", source=CandidateSource.SURGE),
        ])
        assert selection.winner.source == CandidateSource.SURGE
        assert selection.reason == "Surge override (priority 10000)"


class TestDefaultCascade:
    """SubLocation -> Location -> Customer"""

    def test_sublocation_first(self):
        rate = resolve_default_rate(chain_with(sub=20, loc=30, cust=40))
        assert rate.level == HierarchyLevel.SUBLOCATION
        assert rate.price_per_hour == Decimal("20")

    def test_location_when_sublocation_missing(self):
        rate = resolve_default_rate(chain_with(sub=None, loc=30, cust=40))
        assert rate.level == HierarchyLevel.LOCATION
        assert rate.entity_id == "loc-1"

    def test_zero_is_not_positive(self):
        rate = resolve_default_rate(chain_with(sub=0, loc=0, cust=15))
        assert rate.level == HierarchyLevel.CUSTOMER
        assert rate.price_per_hour == Decimal("15")

    def test_none_when_no_positive_rate(self):
        assert resolve_default_rate(chain_with(sub=0, loc=None, cust=None)) is None
