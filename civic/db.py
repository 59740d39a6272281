"""
Database abstraction for Postgres and an in-memory test implementation.
"""

from __future__ import annotations

import functools
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional, Protocol

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    func,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

from civic.types import ProjectStatus, Role, TownhallStatus, VoteType


class DuplicateRecordError(Exception):
    """Raised when a write would violate a uniqueness constraint."""


class RecordNotFoundError(LookupError):
    """Raised when an update or delete targets a row that does not exist."""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on the way back out.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DbClient(Protocol):
    """Interface for database access."""

    def create_user(
        self,
        email: str,
        username: str,
        password_hash: str,
        role: Role = Role.USER,
    ) -> "UserRecord":
        ...

    def get_user(self, user_id: int) -> Optional["UserRecord"]:
        ...

    def get_user_by_email(self, email: str) -> Optional["UserRecord"]:
        ...

    def find_user_by_email_or_username(
        self, email: str, username: str
    ) -> Optional["UserRecord"]:
        ...

    def create_project(
        self, title: str, description: str, proposer_id: int
    ) -> "ProjectRecord":
        ...

    def get_project(self, project_id: int) -> Optional["ProjectRecord"]:
        ...

    def list_projects(
        self,
        *,
        status: Optional[ProjectStatus] = None,
        proposer_id: Optional[int] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list["ProjectRecord"], int]:
        ...

    def update_project(
        self,
        project_id: int,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        status: Optional[ProjectStatus] = None,
    ) -> "ProjectRecord":
        ...

    def delete_project(self, project_id: int) -> None:
        ...

    def get_vote(self, user_id: int, project_id: int) -> Optional["VoteRecord"]:
        ...

    def create_vote(
        self, user_id: int, project_id: int, vote_type: VoteType
    ) -> "VoteRecord":
        ...

    def update_vote(
        self, user_id: int, project_id: int, vote_type: VoteType
    ) -> "VoteRecord":
        ...

    def list_votes(self, project_id: int) -> list["VoteRecord"]:
        ...

    def list_vote_types(
        self, project_ids: Iterable[int]
    ) -> Dict[int, list[VoteType]]:
        ...

    def create_townhall(
        self,
        title: str,
        description: str,
        organizer_id: int,
        scheduled_at: datetime,
        zoom_link: Optional[str] = None,
    ) -> "TownhallRecord":
        ...

    def get_townhall(self, townhall_id: int) -> Optional["TownhallRecord"]:
        ...

    def list_townhalls(
        self,
        *,
        status: Optional[TownhallStatus] = None,
        organizer_id: Optional[int] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list["TownhallRecord"], int]:
        ...

    def update_townhall(
        self,
        townhall_id: int,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        scheduled_at: Optional[datetime] = None,
        zoom_link: Optional[str] = None,
        status: Optional[TownhallStatus] = None,
    ) -> "TownhallRecord":
        ...

    def delete_townhall(self, townhall_id: int) -> None:
        ...

    def create_x_update(
        self,
        post_id: str,
        content: str,
        author: str,
        posted_at: datetime,
        fetched_at: Optional[datetime] = None,
    ) -> "XUpdateRecord":
        ...

    def get_x_update(self, update_id: int) -> Optional["XUpdateRecord"]:
        ...

    def get_x_update_by_post_id(self, post_id: str) -> Optional["XUpdateRecord"]:
        ...

    def list_x_updates(
        self,
        *,
        author: Optional[str] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list["XUpdateRecord"], int]:
        ...

    def count_x_updates(self) -> int:
        ...

    def prune_x_updates(self, keep: int) -> int:
        ...


@dataclass
class UserSummary:
    id: int
    username: str
    email: str

    def as_dict(self) -> dict:
        return {"id": self.id, "username": self.username, "email": self.email}


@dataclass
class UserRecord:
    id: int
    email: str
    username: str
    password_hash: str
    role: Role
    created_at: datetime

    def summary(self) -> UserSummary:
        return UserSummary(id=self.id, username=self.username, email=self.email)

    def as_dict(self) -> dict:
        # Never expose the password hash.
        return {
            "id": self.id,
            "email": self.email,
            "username": self.username,
            "role": self.role.value,
            "created_at": self.created_at,
        }


@dataclass
class ProjectRecord:
    id: int
    title: str
    description: str
    status: ProjectStatus
    proposer_id: int
    created_at: datetime
    updated_at: datetime
    proposer: Optional[UserSummary] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "proposer_id": self.proposer_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "proposer": self.proposer.as_dict() if self.proposer else None,
        }


@dataclass
class VoteRecord:
    id: int
    user_id: int
    project_id: int
    vote_type: VoteType
    created_at: datetime
    updated_at: datetime
    user: Optional[UserSummary] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "project_id": self.project_id,
            "vote_type": self.vote_type.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class TownhallRecord:
    id: int
    title: str
    description: str
    organizer_id: int
    scheduled_at: datetime
    zoom_link: Optional[str]
    status: TownhallStatus
    created_at: datetime
    updated_at: datetime
    organizer: Optional[UserSummary] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "organizer_id": self.organizer_id,
            "scheduled_at": self.scheduled_at,
            "zoom_link": self.zoom_link,
            "status": self.status.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "organizer": self.organizer.as_dict() if self.organizer else None,
        }


@dataclass
class XUpdateRecord:
    id: int
    post_id: str
    content: str
    author: str
    posted_at: datetime
    fetched_at: datetime

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "post_id": self.post_id,
            "content": self.content,
            "author": self.author,
            "posted_at": self.posted_at,
            "fetched_at": self.fetched_at,
        }


def _in_range(
    value: datetime, from_date: Optional[datetime], to_date: Optional[datetime]
) -> bool:
    if from_date and value < from_date:
        return False
    if to_date and value > to_date:
        return False
    return True


def _synchronized(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


class InMemoryDbClient:
    """Simple in-memory database for development and tests.

    Enforces the same uniqueness rules as the SQL schema so callers see
    identical DuplicateRecordError behavior. Writes and scans hold a
    re-entrant lock; the sync scheduler thread shares the client with
    request handlers.
    """

    def __init__(self):
        self.users: Dict[int, UserRecord] = {}
        self.projects: Dict[int, ProjectRecord] = {}
        self.votes: Dict[tuple[int, int], VoteRecord] = {}
        self.townhalls: Dict[int, TownhallRecord] = {}
        self.x_updates: Dict[int, XUpdateRecord] = {}
        self._sequences: Dict[str, int] = {}
        self._lock = threading.RLock()

    def _next_id(self, table: str) -> int:
        self._sequences[table] = self._sequences.get(table, 0) + 1
        return self._sequences[table]

    def _summary(self, user_id: int) -> Optional[UserSummary]:
        user = self.users.get(user_id)
        return user.summary() if user else None

    @_synchronized
    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.users.clear()
        self.projects.clear()
        self.votes.clear()
        self.townhalls.clear()
        self.x_updates.clear()
        self._sequences.clear()

    # Users

    @_synchronized
    def create_user(
        self,
        email: str,
        username: str,
        password_hash: str,
        role: Role = Role.USER,
    ) -> UserRecord:
        for user in self.users.values():
            if user.email == email or user.username == username:
                raise DuplicateRecordError("User already exists")
        record = UserRecord(
            id=self._next_id("users"),
            email=email,
            username=username,
            password_hash=password_hash,
            role=role,
            created_at=utcnow(),
        )
        self.users[record.id] = record
        return record

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        return self.users.get(user_id)

    @_synchronized
    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        for user in self.users.values():
            if user.email == email:
                return user
        return None

    @_synchronized
    def find_user_by_email_or_username(
        self, email: str, username: str
    ) -> Optional[UserRecord]:
        for user in self.users.values():
            if user.email == email or user.username == username:
                return user
        return None

    # Projects

    def _with_proposer(self, project: ProjectRecord) -> ProjectRecord:
        return replace(project, proposer=self._summary(project.proposer_id))

    @_synchronized
    def create_project(
        self, title: str, description: str, proposer_id: int
    ) -> ProjectRecord:
        now = utcnow()
        record = ProjectRecord(
            id=self._next_id("projects"),
            title=title,
            description=description,
            status=ProjectStatus.PROPOSED,
            proposer_id=proposer_id,
            created_at=now,
            updated_at=now,
        )
        self.projects[record.id] = record
        return self._with_proposer(record)

    def get_project(self, project_id: int) -> Optional[ProjectRecord]:
        project = self.projects.get(project_id)
        return self._with_proposer(project) if project else None

    @_synchronized
    def list_projects(
        self,
        *,
        status: Optional[ProjectStatus] = None,
        proposer_id: Optional[int] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[ProjectRecord], int]:
        matches = [
            project
            for project in self.projects.values()
            if (status is None or project.status == status)
            and (proposer_id is None or project.proposer_id == proposer_id)
        ]
        matches.sort(key=lambda p: (p.created_at, p.id), reverse=True)
        page = matches[offset : offset + limit]
        return [self._with_proposer(p) for p in page], len(matches)

    @_synchronized
    def update_project(
        self,
        project_id: int,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        status: Optional[ProjectStatus] = None,
    ) -> ProjectRecord:
        project = self.projects.get(project_id)
        if not project:
            raise RecordNotFoundError(f"Project {project_id} not found")
        if title is not None:
            project.title = title
        if description is not None:
            project.description = description
        if status is not None:
            project.status = status
        project.updated_at = utcnow()
        return self._with_proposer(project)

    @_synchronized
    def delete_project(self, project_id: int) -> None:
        if project_id not in self.projects:
            raise RecordNotFoundError(f"Project {project_id} not found")
        del self.projects[project_id]
        for key in [k for k in self.votes if k[1] == project_id]:
            del self.votes[key]

    # Votes

    def get_vote(self, user_id: int, project_id: int) -> Optional[VoteRecord]:
        return self.votes.get((user_id, project_id))

    @_synchronized
    def create_vote(
        self, user_id: int, project_id: int, vote_type: VoteType
    ) -> VoteRecord:
        key = (user_id, project_id)
        if key in self.votes:
            raise DuplicateRecordError("Vote already exists")
        now = utcnow()
        record = VoteRecord(
            id=self._next_id("votes"),
            user_id=user_id,
            project_id=project_id,
            vote_type=vote_type,
            created_at=now,
            updated_at=now,
        )
        self.votes[key] = record
        return record

    @_synchronized
    def update_vote(
        self, user_id: int, project_id: int, vote_type: VoteType
    ) -> VoteRecord:
        vote = self.votes.get((user_id, project_id))
        if not vote:
            raise RecordNotFoundError("Vote not found")
        vote.vote_type = vote_type
        vote.updated_at = utcnow()
        return vote

    @_synchronized
    def list_votes(self, project_id: int) -> list[VoteRecord]:
        votes = [v for v in self.votes.values() if v.project_id == project_id]
        votes.sort(key=lambda v: v.id)
        return [replace(v, user=self._summary(v.user_id)) for v in votes]

    @_synchronized
    def list_vote_types(
        self, project_ids: Iterable[int]
    ) -> Dict[int, list[VoteType]]:
        result: Dict[int, list[VoteType]] = {pid: [] for pid in project_ids}
        for vote in self.votes.values():
            if vote.project_id in result:
                result[vote.project_id].append(vote.vote_type)
        return result

    # Townhalls

    def _with_organizer(self, townhall: TownhallRecord) -> TownhallRecord:
        return replace(townhall, organizer=self._summary(townhall.organizer_id))

    @_synchronized
    def create_townhall(
        self,
        title: str,
        description: str,
        organizer_id: int,
        scheduled_at: datetime,
        zoom_link: Optional[str] = None,
    ) -> TownhallRecord:
        now = utcnow()
        record = TownhallRecord(
            id=self._next_id("townhalls"),
            title=title,
            description=description,
            organizer_id=organizer_id,
            scheduled_at=scheduled_at,
            zoom_link=zoom_link,
            status=TownhallStatus.SCHEDULED,
            created_at=now,
            updated_at=now,
        )
        self.townhalls[record.id] = record
        return self._with_organizer(record)

    def get_townhall(self, townhall_id: int) -> Optional[TownhallRecord]:
        townhall = self.townhalls.get(townhall_id)
        return self._with_organizer(townhall) if townhall else None

    @_synchronized
    def list_townhalls(
        self,
        *,
        status: Optional[TownhallStatus] = None,
        organizer_id: Optional[int] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[TownhallRecord], int]:
        matches = [
            t
            for t in self.townhalls.values()
            if (status is None or t.status == status)
            and (organizer_id is None or t.organizer_id == organizer_id)
            and _in_range(t.scheduled_at, from_date, to_date)
        ]
        matches.sort(key=lambda t: (t.scheduled_at, t.id))
        page = matches[offset : offset + limit]
        return [self._with_organizer(t) for t in page], len(matches)

    @_synchronized
    def update_townhall(
        self,
        townhall_id: int,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        scheduled_at: Optional[datetime] = None,
        zoom_link: Optional[str] = None,
        status: Optional[TownhallStatus] = None,
    ) -> TownhallRecord:
        townhall = self.townhalls.get(townhall_id)
        if not townhall:
            raise RecordNotFoundError(f"Townhall {townhall_id} not found")
        if title is not None:
            townhall.title = title
        if description is not None:
            townhall.description = description
        if scheduled_at is not None:
            townhall.scheduled_at = scheduled_at
        if zoom_link is not None:
            townhall.zoom_link = zoom_link
        if status is not None:
            townhall.status = status
        townhall.updated_at = utcnow()
        return self._with_organizer(townhall)

    @_synchronized
    def delete_townhall(self, townhall_id: int) -> None:
        if townhall_id not in self.townhalls:
            raise RecordNotFoundError(f"Townhall {townhall_id} not found")
        del self.townhalls[townhall_id]

    # X updates

    @_synchronized
    def create_x_update(
        self,
        post_id: str,
        content: str,
        author: str,
        posted_at: datetime,
        fetched_at: Optional[datetime] = None,
    ) -> XUpdateRecord:
        if self.get_x_update_by_post_id(post_id):
            raise DuplicateRecordError(f"X update {post_id} already exists")
        record = XUpdateRecord(
            id=self._next_id("x_updates"),
            post_id=post_id,
            content=content,
            author=author,
            posted_at=posted_at,
            fetched_at=fetched_at or utcnow(),
        )
        self.x_updates[record.id] = record
        return record

    def get_x_update(self, update_id: int) -> Optional[XUpdateRecord]:
        return self.x_updates.get(update_id)

    @_synchronized
    def get_x_update_by_post_id(self, post_id: str) -> Optional[XUpdateRecord]:
        for update in self.x_updates.values():
            if update.post_id == post_id:
                return update
        return None

    @_synchronized
    def list_x_updates(
        self,
        *,
        author: Optional[str] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[XUpdateRecord], int]:
        needle = author.lower() if author else None
        matches = [
            u
            for u in self.x_updates.values()
            if (needle is None or needle in u.author.lower())
            and _in_range(u.posted_at, from_date, to_date)
        ]
        matches.sort(key=lambda u: (u.posted_at, u.id), reverse=True)
        return matches[offset : offset + limit], len(matches)

    def count_x_updates(self) -> int:
        return len(self.x_updates)

    @_synchronized
    def prune_x_updates(self, keep: int) -> int:
        ordered = sorted(
            self.x_updates.values(),
            key=lambda u: (u.posted_at, u.id),
            reverse=True,
        )
        stale = ordered[keep:]
        for update in stale:
            del self.x_updates[update.id]
        return len(stale)


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        engine_kwargs: dict = {"future": True, "pool_pre_ping": True}
        if database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in database_url:
                # Every session must see the same in-memory database.
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_recycle"] = 1800
        self.engine = create_engine(database_url, **engine_kwargs)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _commit(self, session: Session, what: str) -> None:
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise DuplicateRecordError(f"{what} already exists") from exc

    @staticmethod
    def _summary(user: Optional["UserRow"]) -> Optional[UserSummary]:
        if user is None:
            return None
        return UserSummary(id=user.id, username=user.username, email=user.email)

    def _to_user_record(self, row: "UserRow") -> UserRecord:
        return UserRecord(
            id=row.id,
            email=row.email,
            username=row.username,
            password_hash=row.password_hash,
            role=Role(row.role),
            created_at=_aware(row.created_at),
        )

    def _to_project_record(self, row: "ProjectRow") -> ProjectRecord:
        return ProjectRecord(
            id=row.id,
            title=row.title,
            description=row.description,
            status=ProjectStatus(row.status),
            proposer_id=row.proposer_id,
            created_at=_aware(row.created_at),
            updated_at=_aware(row.updated_at),
            proposer=self._summary(row.proposer),
        )

    def _to_vote_record(self, row: "VoteRow", with_user: bool = False) -> VoteRecord:
        return VoteRecord(
            id=row.id,
            user_id=row.user_id,
            project_id=row.project_id,
            vote_type=VoteType(row.vote_type),
            created_at=_aware(row.created_at),
            updated_at=_aware(row.updated_at),
            user=self._summary(row.user) if with_user else None,
        )

    def _to_townhall_record(self, row: "TownhallRow") -> TownhallRecord:
        return TownhallRecord(
            id=row.id,
            title=row.title,
            description=row.description,
            organizer_id=row.organizer_id,
            scheduled_at=_aware(row.scheduled_at),
            zoom_link=row.zoom_link,
            status=TownhallStatus(row.status),
            created_at=_aware(row.created_at),
            updated_at=_aware(row.updated_at),
            organizer=self._summary(row.organizer),
        )

    def _to_x_update_record(self, row: "XUpdateRow") -> XUpdateRecord:
        return XUpdateRecord(
            id=row.id,
            post_id=row.post_id,
            content=row.content,
            author=row.author,
            posted_at=_aware(row.posted_at),
            fetched_at=_aware(row.fetched_at),
        )

    # Users

    def create_user(
        self,
        email: str,
        username: str,
        password_hash: str,
        role: Role = Role.USER,
    ) -> UserRecord:
        with self.Session() as session:
            row = UserRow(
                email=email,
                username=username,
                password_hash=password_hash,
                role=role.value,
                created_at=utcnow(),
            )
            session.add(row)
            self._commit(session, "User")
            session.refresh(row)
            return self._to_user_record(row)

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            return self._to_user_record(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.query(UserRow).filter(UserRow.email == email).first()
            return self._to_user_record(row) if row else None

    def find_user_by_email_or_username(
        self, email: str, username: str
    ) -> Optional[UserRecord]:
        with self.Session() as session:
            row = (
                session.query(UserRow)
                .filter((UserRow.email == email) | (UserRow.username == username))
                .first()
            )
            return self._to_user_record(row) if row else None

    # Projects

    def create_project(
        self, title: str, description: str, proposer_id: int
    ) -> ProjectRecord:
        now = utcnow()
        with self.Session() as session:
            row = ProjectRow(
                title=title,
                description=description,
                status=ProjectStatus.PROPOSED.value,
                proposer_id=proposer_id,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            self._commit(session, "Project")
            session.refresh(row)
            return self._to_project_record(row)

    def get_project(self, project_id: int) -> Optional[ProjectRecord]:
        with self.Session() as session:
            row = session.get(ProjectRow, project_id)
            return self._to_project_record(row) if row else None

    def list_projects(
        self,
        *,
        status: Optional[ProjectStatus] = None,
        proposer_id: Optional[int] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[ProjectRecord], int]:
        with self.Session() as session:
            query = session.query(ProjectRow)
            if status is not None:
                query = query.filter(ProjectRow.status == status.value)
            if proposer_id is not None:
                query = query.filter(ProjectRow.proposer_id == proposer_id)
            total = query.count()
            rows = (
                query.order_by(ProjectRow.created_at.desc(), ProjectRow.id.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
            return [self._to_project_record(row) for row in rows], total

    def update_project(
        self,
        project_id: int,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        status: Optional[ProjectStatus] = None,
    ) -> ProjectRecord:
        with self.Session() as session:
            row = session.get(ProjectRow, project_id)
            if not row:
                raise RecordNotFoundError(f"Project {project_id} not found")
            if title is not None:
                row.title = title
            if description is not None:
                row.description = description
            if status is not None:
                row.status = status.value
            row.updated_at = utcnow()
            self._commit(session, "Project")
            session.refresh(row)
            return self._to_project_record(row)

    def delete_project(self, project_id: int) -> None:
        with self.Session() as session:
            row = session.get(ProjectRow, project_id)
            if not row:
                raise RecordNotFoundError(f"Project {project_id} not found")
            session.query(VoteRow).filter(VoteRow.project_id == project_id).delete(
                synchronize_session=False
            )
            session.delete(row)
            session.commit()

    # Votes

    def get_vote(self, user_id: int, project_id: int) -> Optional[VoteRecord]:
        with self.Session() as session:
            row = (
                session.query(VoteRow)
                .filter(VoteRow.user_id == user_id, VoteRow.project_id == project_id)
                .first()
            )
            return self._to_vote_record(row) if row else None

    def create_vote(
        self, user_id: int, project_id: int, vote_type: VoteType
    ) -> VoteRecord:
        now = utcnow()
        with self.Session() as session:
            row = VoteRow(
                user_id=user_id,
                project_id=project_id,
                vote_type=vote_type.value,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            self._commit(session, "Vote")
            session.refresh(row)
            return self._to_vote_record(row)

    def update_vote(
        self, user_id: int, project_id: int, vote_type: VoteType
    ) -> VoteRecord:
        with self.Session() as session:
            row = (
                session.query(VoteRow)
                .filter(VoteRow.user_id == user_id, VoteRow.project_id == project_id)
                .first()
            )
            if not row:
                raise RecordNotFoundError("Vote not found")
            row.vote_type = vote_type.value
            row.updated_at = utcnow()
            session.commit()
            session.refresh(row)
            return self._to_vote_record(row)

    def list_votes(self, project_id: int) -> list[VoteRecord]:
        with self.Session() as session:
            rows = (
                session.query(VoteRow)
                .filter(VoteRow.project_id == project_id)
                .order_by(VoteRow.id.asc())
                .all()
            )
            return [self._to_vote_record(row, with_user=True) for row in rows]

    def list_vote_types(
        self, project_ids: Iterable[int]
    ) -> Dict[int, list[VoteType]]:
        ids = list(project_ids)
        result: Dict[int, list[VoteType]] = {pid: [] for pid in ids}
        if not ids:
            return result
        with self.Session() as session:
            rows = (
                session.query(VoteRow.project_id, VoteRow.vote_type)
                .filter(VoteRow.project_id.in_(ids))
                .all()
            )
        for project_id, vote_type in rows:
            result[project_id].append(VoteType(vote_type))
        return result

    # Townhalls

    def create_townhall(
        self,
        title: str,
        description: str,
        organizer_id: int,
        scheduled_at: datetime,
        zoom_link: Optional[str] = None,
    ) -> TownhallRecord:
        now = utcnow()
        with self.Session() as session:
            row = TownhallRow(
                title=title,
                description=description,
                organizer_id=organizer_id,
                scheduled_at=scheduled_at,
                zoom_link=zoom_link,
                status=TownhallStatus.SCHEDULED.value,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            self._commit(session, "Townhall")
            session.refresh(row)
            return self._to_townhall_record(row)

    def get_townhall(self, townhall_id: int) -> Optional[TownhallRecord]:
        with self.Session() as session:
            row = session.get(TownhallRow, townhall_id)
            return self._to_townhall_record(row) if row else None

    def list_townhalls(
        self,
        *,
        status: Optional[TownhallStatus] = None,
        organizer_id: Optional[int] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[TownhallRecord], int]:
        with self.Session() as session:
            query = session.query(TownhallRow)
            if status is not None:
                query = query.filter(TownhallRow.status == status.value)
            if organizer_id is not None:
                query = query.filter(TownhallRow.organizer_id == organizer_id)
            if from_date is not None:
                query = query.filter(TownhallRow.scheduled_at >= from_date)
            if to_date is not None:
                query = query.filter(TownhallRow.scheduled_at <= to_date)
            total = query.count()
            rows = (
                query.order_by(TownhallRow.scheduled_at.asc(), TownhallRow.id.asc())
                .offset(offset)
                .limit(limit)
                .all()
            )
            return [self._to_townhall_record(row) for row in rows], total

    def update_townhall(
        self,
        townhall_id: int,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        scheduled_at: Optional[datetime] = None,
        zoom_link: Optional[str] = None,
        status: Optional[TownhallStatus] = None,
    ) -> TownhallRecord:
        with self.Session() as session:
            row = session.get(TownhallRow, townhall_id)
            if not row:
                raise RecordNotFoundError(f"Townhall {townhall_id} not found")
            if title is not None:
                row.title = title
            if description is not None:
                row.description = description
            if scheduled_at is not None:
                row.scheduled_at = scheduled_at
            if zoom_link is not None:
                row.zoom_link = zoom_link
            if status is not None:
                row.status = status.value
            row.updated_at = utcnow()
            session.commit()
            session.refresh(row)
            return self._to_townhall_record(row)

    def delete_townhall(self, townhall_id: int) -> None:
        with self.Session() as session:
            row = session.get(TownhallRow, townhall_id)
            if not row:
                raise RecordNotFoundError(f"Townhall {townhall_id} not found")
            session.delete(row)
            session.commit()

    # X updates

    def create_x_update(
        self,
        post_id: str,
        content: str,
        author: str,
        posted_at: datetime,
        fetched_at: Optional[datetime] = None,
    ) -> XUpdateRecord:
        with self.Session() as session:
            row = XUpdateRow(
                post_id=post_id,
                content=content,
                author=author,
                posted_at=posted_at,
                fetched_at=fetched_at or utcnow(),
            )
            session.add(row)
            self._commit(session, f"X update {post_id}")
            session.refresh(row)
            return self._to_x_update_record(row)

    def get_x_update(self, update_id: int) -> Optional[XUpdateRecord]:
        with self.Session() as session:
            row = session.get(XUpdateRow, update_id)
            return self._to_x_update_record(row) if row else None

    def get_x_update_by_post_id(self, post_id: str) -> Optional[XUpdateRecord]:
        with self.Session() as session:
            row = (
                session.query(XUpdateRow).filter(XUpdateRow.post_id == post_id).first()
            )
            return self._to_x_update_record(row) if row else None

    def list_x_updates(
        self,
        *,
        author: Optional[str] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[XUpdateRecord], int]:
        with self.Session() as session:
            query = session.query(XUpdateRow)
            if author:
                query = query.filter(
                    func.lower(XUpdateRow.author).contains(
                        author.lower(), autoescape=True
                    )
                )
            if from_date is not None:
                query = query.filter(XUpdateRow.posted_at >= from_date)
            if to_date is not None:
                query = query.filter(XUpdateRow.posted_at <= to_date)
            total = query.count()
            rows = (
                query.order_by(XUpdateRow.posted_at.desc(), XUpdateRow.id.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
            return [self._to_x_update_record(row) for row in rows], total

    def count_x_updates(self) -> int:
        with self.Session() as session:
            return session.query(XUpdateRow).count()

    def prune_x_updates(self, keep: int) -> int:
        with self.Session() as session:
            stale_ids = [
                row_id
                for (row_id,) in session.query(XUpdateRow.id)
                .order_by(XUpdateRow.posted_at.desc(), XUpdateRow.id.desc())
                .offset(keep)
                .all()
            ]
            if not stale_ids:
                return 0
            deleted = (
                session.query(XUpdateRow)
                .filter(XUpdateRow.id.in_(stale_ids))
                .delete(synchronize_session=False)
            )
            session.commit()
            return deleted or 0


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    username = Column(String(30), nullable=False, unique=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default=Role.USER.value)
    created_at = Column(DateTime(timezone=True), nullable=False)


class ProjectRow(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(
        String, nullable=False, default=ProjectStatus.PROPOSED.value, index=True
    )
    proposer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    proposer = relationship("UserRow", lazy="joined")


class VoteRow(Base):
    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint("user_id", "project_id", name="uq_votes_user_project"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    project_id = Column(
        Integer, ForeignKey("projects.id"), nullable=False, index=True
    )
    vote_type = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    user = relationship("UserRow", lazy="joined")


class TownhallRow(Base):
    __tablename__ = "townhalls"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    organizer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    scheduled_at = Column(DateTime(timezone=True), nullable=False, index=True)
    zoom_link = Column(String, nullable=True)
    status = Column(
        String, nullable=False, default=TownhallStatus.SCHEDULED.value, index=True
    )
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    organizer = relationship("UserRow", lazy="joined")


class XUpdateRow(Base):
    __tablename__ = "x_updates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    post_id = Column(String, nullable=False, unique=True)
    content = Column(Text, nullable=False)
    author = Column(String, nullable=False, index=True)
    posted_at = Column(DateTime(timezone=True), nullable=False, index=True)
    fetched_at = Column(DateTime(timezone=True), nullable=False)
