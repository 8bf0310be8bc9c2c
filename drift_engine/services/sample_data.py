"""
Member workload sample providers.

The load-balance calculator needs anonymized per-member samples. Production
deployments inject a provider backed by the aggregation collaborator. The
synthetic provider below exists for demos and tests only; scoring code never
generates data on its own.
"""

import logging
from typing import Dict, List, Optional, Protocol, Sequence

import numpy as np

from drift_engine.models.schemas import MemberWorkloadSample, Team

logger = logging.getLogger(__name__)


class MemberSampleProvider(Protocol):
    """Supplies anonymized workload samples for a team, or None if unavailable."""

    async def get_member_samples(self, team: Team) -> Optional[List[MemberWorkloadSample]]: ...


class StaticMemberSampleProvider:
    """Serves pre-fetched samples keyed by team id."""

    def __init__(self, samples_by_team: Dict[str, Sequence[MemberWorkloadSample]]):
        self._samples = {team_id: list(samples) for team_id, samples in samples_by_team.items()}

    async def get_member_samples(self, team: Team) -> Optional[List[MemberWorkloadSample]]:
        return self._samples.get(team.teamId)


class SyntheticMemberSampleProvider:
    """
    Deterministic synthetic samples for demos and tests.

    Each team gets its own seeded generator, so repeated calls for the same
    team return the same samples. `spread` scales member-to-member variation:
    0 yields identical members.
    """

    def __init__(
        self,
        seed: int = 7,
        spread: float = 0.25,
        meeting_hours: float = 12.0,
        after_hours_hours: float = 4.0,
        response_pressure: float = 0.5,
    ):
        self.seed = seed
        self.spread = spread
        self.means = np.array([meeting_hours, after_hours_hours, response_pressure], dtype=float)

    def _rng(self, team_id: str) -> np.random.Generator:
        team_key = int.from_bytes(team_id.encode('utf-8'), 'little') % (2 ** 32)
        return np.random.default_rng([self.seed, team_key])

    async def get_member_samples(self, team: Team) -> Optional[List[MemberWorkloadSample]]:
        rng = self._rng(team.teamId)
        noise = rng.normal(loc=1.0, scale=self.spread, size=(team.memberCount, 3))
        values = np.clip(noise, 0.0, None) * self.means

        logger.debug(f"Generated {team.memberCount} synthetic member samples for team {team.teamId}")
        return [
            MemberWorkloadSample(
                meetingHours=round(float(row[0]), 2),
                afterHoursHours=round(float(row[1]), 2),
                responsePressure=round(float(row[2]), 3),
            )
            for row in values
        ]
