"""Phone form actions (post/redirect/get back to the page).

Every action ends in a redirect to `GET /`, which loads the list itself, so
mutations here skip the controller's own refetch.
"""

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import RedirectResponse

from ..dependencies import get_controller, save_controller
from ..rate_limit import limiter, mutation_limit
from .controller import PhoneFormController

router = APIRouter(tags=["phones"])


def _back_to_form(request: Request, controller: PhoneFormController) -> RedirectResponse:
    save_controller(request, controller)
    return RedirectResponse(url="/", status_code=303)


@router.post("/phones")
@limiter.limit(mutation_limit)
async def add_phone(
    request: Request,
    phone: str = Form(""),
    controller: PhoneFormController = Depends(get_controller),
):
    controller.input_changed(phone)
    if await controller.ensure_identity():
        await controller.add(refresh=False)
    return _back_to_form(request, controller)


@router.post("/phones/{record_id}/edit")
async def edit_phone(
    request: Request,
    record_id: str,
    controller: PhoneFormController = Depends(get_controller),
):
    await controller.bootstrap()
    controller.begin_edit(record_id)
    return _back_to_form(request, controller)


@router.post("/phones/{record_id}/cancel")
async def cancel_edit(
    request: Request,
    record_id: str,
    controller: PhoneFormController = Depends(get_controller),
):
    controller.cancel_edit()
    return _back_to_form(request, controller)


@router.post("/phones/{record_id}")
@limiter.limit(mutation_limit)
async def save_phone(
    request: Request,
    record_id: str,
    phone: str = Form(""),
    controller: PhoneFormController = Depends(get_controller),
):
    # A stale form for a record no longer being edited is ignored.
    if controller.state.editing_id != record_id:
        return _back_to_form(request, controller)

    controller.edit_changed(phone)
    if await controller.ensure_identity():
        await controller.save_edit(refresh=False)
    return _back_to_form(request, controller)


@router.post("/phones/{record_id}/delete")
@limiter.limit(mutation_limit)
async def delete_phone(
    request: Request,
    record_id: str,
    controller: PhoneFormController = Depends(get_controller),
):
    if await controller.ensure_identity():
        await controller.delete(record_id, refresh=False)
    return _back_to_form(request, controller)
