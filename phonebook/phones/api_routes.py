"""Phone JSON API: the same sync operations as the page, for script callers."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..dependencies import get_api_controller, save_controller
from ..rate_limit import limiter, mutation_limit
from .controller import PhoneFormController
from .errors import (
    CapacityError,
    DuplicatePhoneError,
    PermissionDeniedError,
    PhoneFormError,
    PhoneValidationError,
    TransportError,
)
from .schemas import PhoneFormResponse, PhoneWriteRequest
from .state import FormState

router = APIRouter(tags=["phones-api"])

_ERROR_STATUS: dict[type[PhoneFormError], int] = {
    PhoneValidationError: 422,
    DuplicatePhoneError: 409,
    CapacityError: 409,
    PermissionDeniedError: 403,
    TransportError: 502,
}


def _respond(
    request: Request,
    controller: PhoneFormController,
    ok: bool,
    success_status: int = 200,
) -> JSONResponse:
    save_controller(request, controller, include_form=False)
    if ok:
        body = PhoneFormResponse(ok=True, phones=controller.records)
        return JSONResponse(body.model_dump(mode="json"), status_code=success_status)

    error = controller.last_error or TransportError()
    body = PhoneFormResponse(ok=False, error=error.user_message, phones=controller.records)
    return JSONResponse(body.model_dump(mode="json"), status_code=_ERROR_STATUS.get(type(error), 400))


@router.get("/phones")
async def list_phones(request: Request, controller: PhoneFormController = Depends(get_api_controller)):
    ok = await controller.bootstrap()
    return _respond(request, controller, ok)


@router.post("/phones")
@limiter.limit(mutation_limit)
async def create_phone(
    request: Request,
    payload: PhoneWriteRequest,
    controller: PhoneFormController = Depends(get_api_controller),
):
    controller.input_changed(payload.phone)
    ok = await controller.ensure_identity() and await controller.add()
    return _respond(request, controller, ok, success_status=201)


@router.put("/phones/{record_id}")
@limiter.limit(mutation_limit)
async def update_phone(
    request: Request,
    record_id: str,
    payload: PhoneWriteRequest,
    controller: PhoneFormController = Depends(get_api_controller),
):
    controller.state = FormState(editing_id=record_id)
    controller.edit_changed(payload.phone)
    ok = await controller.ensure_identity() and await controller.save_edit()
    return _respond(request, controller, ok)


@router.delete("/phones/{record_id}")
@limiter.limit(mutation_limit)
async def delete_phone(
    request: Request,
    record_id: str,
    controller: PhoneFormController = Depends(get_api_controller),
):
    ok = await controller.ensure_identity() and await controller.delete(record_id)
    return _respond(request, controller, ok)
