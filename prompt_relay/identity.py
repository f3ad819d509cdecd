# prompt_relay/identity.py
from typing import Protocol

from sqlalchemy.orm import Session, sessionmaker

from prompt_relay.entities import WorkspaceInstallation
from prompt_relay.errors import IdentityNotResolvedError


class IdentityResolver(Protocol):
    def resolve_user(self, team_id: str) -> str: ...

    def resolve_organization(self, team_id: str) -> str: ...


class InstallationIdentityResolver:
    """
    Maps a workspace to the organization that installed the app and to the
    installing user. Every member of a workspace acts as that user until
    per-user account mapping exists.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def _installation(self, team_id: str) -> WorkspaceInstallation:
        if not team_id:
            raise IdentityNotResolvedError(team_id)
        session: Session = self.session_factory()
        try:
            row = (
                session.query(WorkspaceInstallation)
                .filter(WorkspaceInstallation.external_team_id == str(team_id))
                .one_or_none()
            )
        finally:
            session.close()
        if row is None:
            raise IdentityNotResolvedError(team_id)
        return row

    def resolve_user(self, team_id: str) -> str:
        return self._installation(team_id).user_id

    def resolve_organization(self, team_id: str) -> str:
        return self._installation(team_id).organization_id
