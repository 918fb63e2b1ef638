"""Doctor endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from app.api.v1.endpoints.accounts import build_account_router, read_image
from app.core.account_kinds import DOCTOR_SPEC, AccountKind
from app.dependencies import (
    ChatServiceDep,
    CurrentDoctorId,
    DatabaseSession,
    get_current_doctor_id,
    get_doctor_accounts,
    get_doctor_challenges,
)
from app.schemas.chats import ChatMessageRequest, ChatResponse
from app.schemas.doctors import DoctorProfileResponse
from app.services.account_service import AccountService

router = APIRouter(tags=["Doctors"])
router.include_router(
    build_account_router(
        DOCTOR_SPEC,
        get_challenges=get_doctor_challenges,
        get_accounts=get_doctor_accounts,
        get_current_id=get_current_doctor_id,
        profile_response=DoctorProfileResponse,
    )
)


@router.put(
    "/profile",
    response_model=DoctorProfileResponse,
    status_code=status.HTTP_200_OK,
    summary="Update own doctor profile",
)
async def update_profile(
    doctor_id: CurrentDoctorId,
    accounts: Annotated[AccountService, Depends(get_doctor_accounts)],
    db: DatabaseSession,
    name: Annotated[str | None, Form()] = None,
    speciality: Annotated[str | None, Form()] = None,
    degree: Annotated[str | None, Form()] = None,
    experience: Annotated[str | None, Form()] = None,
    about: Annotated[str | None, Form()] = None,
    fees: Annotated[int | None, Form(ge=0)] = None,
    available: Annotated[bool | None, Form()] = None,
    image: Annotated[UploadFile | None, File()] = None,
) -> DoctorProfileResponse:
    """
    Update profile fields and optionally upload a new profile image.

    Supplying any professional detail marks the profile complete.
    """
    changes = {
        "name": name,
        "speciality": speciality,
        "degree": degree,
        "experience": experience,
        "about": about,
        "fees": fees,
        "available": available,
    }
    profile = await accounts.update_profile(db, doctor_id, changes, image=await read_image(image))
    return DoctorProfileResponse(message="Profile updated.", profile=profile)


@router.post(
    "/chat/reply",
    response_model=ChatResponse,
    status_code=status.HTTP_200_OK,
    summary="Reply in a chat",
)
async def reply(
    request: ChatMessageRequest,
    doctor_id: CurrentDoctorId,
    chat_service: ChatServiceDep,
    db: DatabaseSession,
) -> ChatResponse:
    """Append a doctor message; rejected once the chat's access window has closed."""
    chat = await chat_service.append_message(
        db, request.chat_id, doctor_id, AccountKind.DOCTOR, request.text
    )
    return ChatResponse(message="Reply sent.", chat=chat)


@router.get(
    "/chat/{chat_id}",
    response_model=ChatResponse,
    status_code=status.HTTP_200_OK,
    summary="Get a chat",
)
async def get_chat(
    chat_id: UUID,
    doctor_id: CurrentDoctorId,
    chat_service: ChatServiceDep,
    db: DatabaseSession,
) -> ChatResponse:
    chat = await chat_service.get_chat(db, chat_id, doctor_id, AccountKind.DOCTOR)
    return ChatResponse(chat=chat)
