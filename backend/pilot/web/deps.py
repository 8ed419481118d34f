from fastapi import Request

from ..session import WorkspaceSession


def get_session(request: Request) -> WorkspaceSession:
    return request.app.state.session
