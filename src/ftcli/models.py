"""Data models for 42 API resources.

These pydantic models mirror the JSON documents returned by the 42 intranet
API. They are transient: decoded from a response, optionally edited by the
caller, and re-encoded for a write operation. Wire keys that are not valid
Python identifiers (``staff?``, ``validated?``) are mapped through aliases.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class APIModel(BaseModel):
    """Base model accepting both wire aliases and Python field names."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Language(APIModel):
    """Interface language of a campus."""

    id: int
    name: str
    identifier: str = Field(description="ISO 639-1 language code", examples=["fr"])
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Campus(APIModel):
    """A 42 campus."""

    id: int
    name: str
    time_zone: str | None = Field(None, examples=["Africa/Casablanca"])
    language: Language | None = None
    users_count: int = 0
    vogsphere_id: int | None = None
    country: str | None = None
    address: str | None = None
    zip: str | None = None
    city: str | None = None
    website: str | None = None
    facebook: str | None = None
    twitter: str | None = None
    active: bool = True
    email_extension: str | None = None
    default_hidden_phone: bool = False


class CampusUser(APIModel):
    """Membership of a user in a campus."""

    id: int
    user_id: int
    campus_id: int
    is_primary: bool = False


class Cursus(APIModel):
    """A curriculum track."""

    id: int
    name: str
    slug: str
    created_at: datetime | None = None


class CursusUser(APIModel):
    """Enrollment of a user in a cursus."""

    id: int
    cursus_id: int
    grade: str | None = None
    level: float = 0
    begin_at: datetime | None = None
    end_at: datetime | None = None
    blackholed_at: datetime | None = None
    has_coalition: bool = False
    cursus: Cursus | None = None


class User(APIModel):
    """A 42 user profile.

    Only ``login`` is needed to address a user. Nested stubs returned inside
    other resources (close subjects, team members) decode into this same model
    with most fields left unset.
    """

    id: int | None = None
    login: str | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    usual_first_name: str | None = None
    usual_full_name: str | None = None
    displayname: str | None = None
    url: str | None = Field(None, description="Canonical API URL of the user")
    phone: str | None = Field(None, description="Phone number or 'hidden'")
    image_url: str | None = None
    kind: str | None = Field(None, examples=["student", "admin", "external"])
    is_staff: bool = Field(False, alias="staff?")
    correction_point: int | None = None
    pool_month: str | None = None
    pool_year: str | None = None
    location: str | None = None
    wallet: int | None = None
    campus: list[Campus] = Field(default_factory=list)
    campus_users: list[CampusUser] = Field(default_factory=list)
    cursus_users: list[CursusUser] = Field(default_factory=list)

    @model_validator(mode="after")
    def _single_primary_campus(self) -> User:
        primaries = [entry for entry in self.campus_users if entry.is_primary]
        if len(primaries) > 1:
            raise ValueError(f"user {self.login!r} has {len(primaries)} primary campuses")
        return self

    def primary_campus(self) -> Campus | None:
        """Return the campus flagged primary in ``campus_users``, if any."""
        for entry in self.campus_users:
            if not entry.is_primary:
                continue
            for campus in self.campus:
                if campus.id == entry.campus_id:
                    return campus
        return None


class UserPatch(APIModel):
    """Partial user update.

    Fields left untouched are omitted from the request body. Assigning
    ``None`` is treated the same as not assigning at all.
    """

    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    usual_first_name: str | None = None
    password: str | None = None
    kind: str | None = None
    pool_month: str | None = None
    pool_year: str | None = None


class Close(APIModel):
    """A disciplinary or administrative close on a user account."""

    id: int | None = None
    kind: str | None = Field(None, examples=["agu", "other", "black_hole"])
    reason: str | None = None
    state: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    community_services: list[dict[str, Any]] = Field(default_factory=list)
    user: User | None = Field(None, description="User being closed")
    closer: User | None = Field(None, description="Staff member issuing the close")


class ProjectRef(APIModel):
    """Short project reference used for parents, children and user projects."""

    id: int
    name: str
    slug: str
    url: str | None = None
    parent_id: int | None = None


class Scale(APIModel):
    id: int
    correction_number: int
    is_primary: bool = False


class SessionUpload(APIModel):
    id: int
    name: str


class ProjectSession(APIModel):
    """Campus/cursus specific settings of a project."""

    id: int
    solo: bool | None = None
    begin_at: datetime | None = None
    end_at: datetime | None = None
    estimate_time: str | None = Field(None, examples=["14 days"])
    difficulty: int | None = None
    objectives: list[str] = Field(default_factory=list)
    description: str | None = None
    duration_days: int | None = None
    terminating_after: int | None = None
    project_id: int | None = None
    campus_id: int | None = None
    cursus_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    max_people: int | None = None
    is_subscriptable: bool = False
    scales: list[Scale] = Field(default_factory=list)
    uploads: list[SessionUpload] = Field(default_factory=list)
    team_behaviour: str | None = None
    commit: str | None = None


class Project(APIModel):
    """A catalog project."""

    id: int
    name: str
    slug: str
    parent: ProjectRef | None = None
    children: list[ProjectRef] = Field(default_factory=list)
    attachments: list[Any] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    exam: bool = False
    git_id: int | None = None
    repository: str | None = None
    cursus: list[Cursus] = Field(default_factory=list)
    campus: list[Campus] = Field(default_factory=list)
    videos: list[Any] = Field(default_factory=list)
    project_sessions: list[ProjectSession] = Field(default_factory=list)


class TeamUser(APIModel):
    id: int
    login: str
    url: str | None = None
    leader: bool = False
    occurrence: int = 0
    validated: bool = False
    projects_user_id: int | None = None


class Team(APIModel):
    """A team formed by one or more users for a project attempt."""

    id: int
    name: str | None = None
    url: str | None = None
    final_mark: int | None = None
    project_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    status: str | None = None
    terminating_at: datetime | None = None
    users: list[TeamUser] = Field(default_factory=list)
    locked: bool = Field(False, alias="locked?")
    validated: bool | None = Field(None, alias="validated?")
    closed: bool = Field(False, alias="closed?")
    repo_url: str | None = Field(None, description="Empty until the repository is provisioned")
    repo_uuid: str | None = None
    locked_at: datetime | None = None
    closed_at: datetime | None = None
    project_session_id: int | None = None
    project_gitlab_path: str | None = None


class UserProject(APIModel):
    """A project as seen by one user (a ``projects_users`` entry)."""

    id: int
    occurrence: int = 0
    final_mark: int | None = None
    status: str | None = None
    validated: bool | None = Field(None, alias="validated?")
    current_team_id: int | None = None
    project: ProjectRef
    cursus_ids: list[int] = Field(default_factory=list)
    marked_at: datetime | None = None
    marked: bool = False
    retriable_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    teams: list[Team] = Field(default_factory=list)

    def current_team(self) -> Team | None:
        """Return the active team, falling back to the latest one."""
        if not self.teams:
            return None
        for team in self.teams:
            if team.id == self.current_team_id:
                return team
        return self.teams[-1]
