"""Page route for the phone form (SSR)."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from .dependencies import get_controller, save_controller
from .phones.controller import PhoneFormController
from .phones.masking import PHONE_LENGTH
from .phones.state import set_error

router = APIRouter(tags=["pages"])


@router.get("/", response_class=HTMLResponse)
async def phone_form_page(
    request: Request,
    controller: PhoneFormController = Depends(get_controller),
):
    templates = request.app.state.templates
    await controller.bootstrap()

    state = controller.state
    can_add, can_save = controller.can_add, controller.can_save

    # Errors are shown once, like flash messages; typed input survives reloads.
    controller.state = set_error(state, "")
    save_controller(request, controller)

    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "state": state,
            "phones": controller.records,
            "can_add": can_add,
            "can_save": can_save,
            "phone_length": PHONE_LENGTH,
        },
    )
