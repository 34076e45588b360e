"""Shared fixtures for campusvote tests.

- Unit tests (tests/unit) build collaborators directly on the memory backend.
- Integration tests (tests/integration) drive the FastAPI app through TestClient.
- Async tests run under pytest-asyncio auto mode (see pyproject.toml).
"""
from dataclasses import dataclass

import pytest

from campusvote.dependencies import Services, build_memory_services
from campusvote.models.election_model import CandidateIn, PositionIn
from campusvote.models.voter_model import VoterRegistration


@dataclass
class Election:
    president: str
    secretary: str
    alice: str  # candidate for president
    bob: str  # candidate for president
    carol: str  # candidate for secretary


async def register_voter(services: Services, student_id: str, department: str = "Computer Science"):
    await services.directory.add_verified_ids([student_id])
    return await services.directory.register(
        VoterRegistration(
            student_id=student_id,
            first_name="Test",
            last_name=student_id,
            department=department,
            password="not-used",
        ),
        password_hash="unused-hash",
    )


@pytest.fixture
def services() -> Services:
    """Fresh in-memory services with voting switched on."""
    return build_memory_services(voting_enabled=True)


@pytest.fixture
async def election(services: Services) -> Election:
    catalog = services.catalog
    president = await catalog.create_position(PositionIn(name="President"))
    secretary = await catalog.create_position(PositionIn(name="Secretary"))
    alice = await catalog.create_candidate(CandidateIn(position_id=president.id, name="Alice"))
    bob = await catalog.create_candidate(CandidateIn(position_id=president.id, name="Bob"))
    carol = await catalog.create_candidate(CandidateIn(position_id=secretary.id, name="Carol"))

    await register_voter(services, "V1", "Computer Science")
    await register_voter(services, "V3", "Computer Science")
    await register_voter(services, "V4", "Mathematics")
    return Election(
        president=president.id,
        secretary=secretary.id,
        alice=alice.id,
        bob=bob.id,
        carol=carol.id,
    )
