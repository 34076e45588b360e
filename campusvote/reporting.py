"""Read side for results pages and dashboards.

Every call queries the ledger as it is now. Candidates with no votes are
filled in from the catalog here, since the ledger only knows about votes.
"""
from typing import List, Optional

from campusvote.ledger import VoteLedger
from campusvote.schemas import (
    CandidateTally,
    DepartmentParticipation,
    ElectionStats,
    PositionResult,
)


class ResultsReporter:
    def __init__(self, ledger: VoteLedger, catalog, directory):
        self.ledger = ledger
        self.catalog = catalog
        self.directory = directory

    async def position_results(self, position_id: str) -> Optional[PositionResult]:
        position = await self.catalog.get_position(position_id)
        if position is None:
            return None
        counts = dict(await self.ledger.get_tally(position_id))
        candidates = await self.catalog.list_candidates(position_id)
        rows = [
            CandidateTally(candidate_id=c.id, name=c.name, votes=counts.get(c.id, 0))
            for c in candidates
        ]
        rows.sort(key=lambda r: (-r.votes, r.name))
        return PositionResult(
            position_id=position.id,
            position_name=position.name,
            total_votes=sum(counts.values()),
            candidates=rows,
        )

    async def all_results(self) -> List[PositionResult]:
        results = []
        for position in await self.catalog.list_positions():
            result = await self.position_results(position.id)
            if result is not None:
                results.append(result)
        return results

    async def department_participation(self) -> List[DepartmentParticipation]:
        rows = []
        for department, members in sorted((await self.directory.cohorts()).items()):
            rows.append(
                DepartmentParticipation(
                    department=department,
                    registered=len(members),
                    percentage=await self.ledger.get_participation(members),
                )
            )
        return rows

    async def stats(self) -> ElectionStats:
        cohorts = await self.directory.cohorts()
        return ElectionStats(
            registered_voters=sum(len(m) for m in cohorts.values()),
            positions=len(await self.catalog.list_positions()),
            candidates=len(await self.catalog.list_candidates()),
            votes_cast=await self.ledger.total_votes(),
        )
