"""Shared FastAPI dependencies."""

import httpx
from fastapi import Depends, Request
from pydantic import ValidationError

from .integrations.data_service import AuthSession, TableDataService
from .phones.controller import PhoneFormController
from .phones.state import FormState

SESSION_AUTH_KEY = "data_session"
SESSION_FORM_KEY = "phone_form"


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Get the shared HTTP client from app state."""
    return request.app.state.http


def get_data_service(request: Request, http: httpx.AsyncClient = Depends(get_http_client)) -> TableDataService:
    """Data service bound to the identity stored in the signed session cookie."""
    raw = request.session.get(SESSION_AUTH_KEY)
    session = None
    if raw:
        try:
            session = AuthSession.model_validate(raw)
        except ValidationError:
            request.session.pop(SESSION_AUTH_KEY, None)
    return TableDataService(http, session)


def get_controller(request: Request, service: TableDataService = Depends(get_data_service)) -> PhoneFormController:
    """Controller for the page, resuming the form state carried across the last redirect."""
    state = FormState.from_dict(request.session.get(SESSION_FORM_KEY))
    return PhoneFormController(service, state)


def get_api_controller(service: TableDataService = Depends(get_data_service)) -> PhoneFormController:
    """Controller for JSON callers; no form state is carried between requests."""
    return PhoneFormController(service)


def save_controller(request: Request, controller: PhoneFormController, include_form: bool = True) -> None:
    """Persist identity, and optionally form state, into the session cookie."""
    if include_form:
        request.session[SESSION_FORM_KEY] = controller.state.to_dict()
    session = controller.service.session
    if session is not None:
        request.session[SESSION_AUTH_KEY] = session.model_dump()
    else:
        request.session.pop(SESSION_AUTH_KEY, None)
