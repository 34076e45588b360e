"""Wiring of collaborators and the FastAPI dependencies that hand them out."""
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from campusvote import config
from campusvote.guard import BallotGuard
from campusvote.ledger import VoteLedger
from campusvote.models.voter_model import ROLE_ADMIN, Voter
from campusvote.notifications import EventBus
from campusvote.reporting import ResultsReporter
from campusvote.security import decode_access_token, hash_password
from campusvote.storage import (
    MemoryActivityLog,
    MemoryCatalog,
    MemoryDirectory,
    MemorySettings,
    MemoryVoteStore,
)

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class Services:
    settings: Any
    catalog: Any
    directory: Any
    store: Any
    bus: EventBus = field(default_factory=EventBus)
    activity: Any = field(default_factory=MemoryActivityLog)
    client: Any = None

    def __post_init__(self):
        self.ledger = VoteLedger(self.store)
        self.guard = BallotGuard(
            self.settings, self.catalog, self.directory, self.ledger, self.bus,
            activity=self.activity,
        )
        self.reporter = ResultsReporter(self.ledger, self.catalog, self.directory)

    async def startup(self, admin_username: str = "", admin_password: str = "") -> None:
        for backend in (self.store, self.catalog, self.directory, self.activity):
            ensure = getattr(backend, "ensure_indexes", None)
            if ensure is not None:
                await ensure()
        if admin_username and admin_password:
            await self.directory.save_admin(admin_username, hash_password(admin_password))
            logger.info(f"Admin account '{admin_username}' ready")

    def shutdown(self) -> None:
        if self.client is not None:
            self.client.close()


def build_memory_services(voting_enabled: bool = config.VOTING_ENABLED_DEFAULT) -> Services:
    return Services(
        settings=MemorySettings(voting_enabled),
        catalog=MemoryCatalog(),
        directory=MemoryDirectory(),
        store=MemoryVoteStore(),
    )


def build_mongo_services(client, db_name: str = config.MONGO_DB) -> Services:
    from campusvote.database.connection import get_database
    from campusvote.storage_mongo import (
        MongoActivityLog,
        MongoCatalog,
        MongoDirectory,
        MongoSettings,
        MongoVoteStore,
    )

    db = get_database(client, db_name)
    return Services(
        settings=MongoSettings(db, config.VOTING_ENABLED_DEFAULT),
        catalog=MongoCatalog(db),
        directory=MongoDirectory(db),
        store=MongoVoteStore(db),
        activity=MongoActivityLog(db),
        client=client,
    )


def build_services(backend: str = config.STORAGE_BACKEND) -> Services:
    if backend == "memory":
        return build_memory_services()
    if backend == "mongo":
        from campusvote.database.connection import create_client

        return build_mongo_services(create_client())
    raise ValueError(f"Unknown storage backend: {backend}")


def get_services(request: Request) -> Services:
    return request.app.state.services


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    services: Services = Depends(get_services),
) -> Voter:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated.")
    payload = decode_access_token(credentials.credentials)
    if not payload or "sub" not in payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token.")
    user = await services.directory.get_voter(payload["sub"])
    if user is None:
        raise HTTPException(status_code=401, detail="Account no longer exists.")
    return user


async def require_admin(user: Voter = Depends(get_current_user)) -> Voter:
    if user.role != ROLE_ADMIN:
        raise HTTPException(status_code=403, detail="Admin access required.")
    return user
