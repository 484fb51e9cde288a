from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_number_generator
from api.receipts import receipt_to_response
from database import get_db
from models import LoanApplication
from schemas.application import TransitionRequest
from services import applications, wizard
from services.authorization import CurrentUser, authorize
from services.identifiers import NumberGenerator
from services.state_machine import valid_actions
from utils.case import dict_keys_to_camel, dict_keys_to_snake, row_to_camel, to_camel_key

router = APIRouter(prefix="/api/applications", tags=["applications"])

SUMMARY_COLUMNS = (
    "id",
    "reference_number",
    "application_type",
    "status",
    "loan_product_type",
    "loan_amount",
    "loan_term_months",
    "first_name",
    "last_name",
    "created_at",
    "updated_at",
)


def _app_summary(app: LoanApplication) -> dict[str, Any]:
    return row_to_camel(app, SUMMARY_COLUMNS)


def _app_to_response(app: LoanApplication) -> dict[str, Any]:
    """Full application with camelCase keys plus the actions allowed next."""
    out = row_to_camel(app)
    out["validActions"] = valid_actions(app.status)
    return out


@router.get("")
async def list_applications(
    status: Optional[str] = None,
    page: int = 1,
    limit: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    result = await applications.list_applications(db, user, status=status, page=page, limit=limit)
    return {
        "items": [_app_summary(a) for a in result["items"]],
        "total": result["total"],
        "page": result["page"],
        "totalPages": result["total_pages"],
    }


@router.post("", status_code=201)
async def create_application(
    body: Optional[dict[str, Any]] = Body(None),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    numbers: NumberGenerator = Depends(get_number_generator),
):
    app = await wizard.create_draft(db, user, body or {}, numbers=numbers)
    return _app_to_response(app)


@router.get("/steps")
async def list_steps(user: CurrentUser = Depends(get_current_user)):
    """Wizard step catalogue for building the form."""
    authorize(user, "view")
    return [
        {
            "index": s.index,
            "key": s.key,
            "label": s.label,
            "fields": [to_camel_key(f) for f in s.fields],
        }
        for s in wizard.WIZARD_STEPS
    ]


@router.post("/steps/{step}/validate")
async def validate_step(
    step: int,
    body: Optional[dict[str, Any]] = Body(None),
    user: CurrentUser = Depends(get_current_user),
):
    """Run a step's rules against unsaved form data."""
    authorize(user, "view")
    errors = wizard.validate_step(step, dict_keys_to_snake(body or {}))
    return {"step": step, "valid": not errors, "errors": dict_keys_to_camel(errors)}


@router.get("/{application_id}")
async def get_application(
    application_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    app = await applications.get_application(db, application_id, user)
    out = _app_to_response(app)
    out["receipts"] = [
        receipt_to_response(r) for r in await applications.list_application_receipts(db, application_id)
    ]
    return out


@router.put("/{application_id}/steps/{step}")
async def save_step(
    application_id: str,
    step: int,
    body: Optional[dict[str, Any]] = Body(None),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    app = await wizard.save_step(db, application_id, step, body or {}, user)
    out = _app_to_response(app)
    out["stepErrors"] = dict_keys_to_camel(wizard.validate_step(step, wizard.application_snapshot(app)))
    return out


@router.post("/{application_id}/submit")
async def submit_application(
    application_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    app = await wizard.submit(db, application_id, user)
    return _app_to_response(app)


@router.post("/{application_id}/transitions")
async def transition_application(
    application_id: str,
    body: TransitionRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    app = await applications.transition_application(db, application_id, body.action, body.payload(), user)
    return _app_to_response(app)
