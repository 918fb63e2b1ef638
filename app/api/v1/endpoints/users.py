"""User (patient) endpoints."""

import json
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from app.api.v1.endpoints.accounts import build_account_router, read_image
from app.core.account_kinds import USER_SPEC, AccountKind
from app.core.exceptions import ValidationException
from app.dependencies import (
    ChatServiceDep,
    CurrentUserId,
    DatabaseSession,
    get_current_user_id,
    get_user_accounts,
    get_user_challenges,
)
from app.schemas.chats import ChatMessageRequest, ChatResponse, StartChatRequest
from app.schemas.users import UserProfileResponse
from app.services.account_service import AccountService

router = APIRouter(tags=["Users"])
router.include_router(
    build_account_router(
        USER_SPEC,
        get_challenges=get_user_challenges,
        get_accounts=get_user_accounts,
        get_current_id=get_current_user_id,
        profile_response=UserProfileResponse,
    )
)


@router.put(
    "/profile",
    response_model=UserProfileResponse,
    status_code=status.HTTP_200_OK,
    summary="Update own user profile",
)
async def update_profile(
    user_id: CurrentUserId,
    accounts: Annotated[AccountService, Depends(get_user_accounts)],
    db: DatabaseSession,
    name: Annotated[str, Form(min_length=1)],
    phone: Annotated[str, Form(min_length=1)],
    dob: Annotated[str, Form(min_length=1)],
    gender: Annotated[str, Form(min_length=1)],
    address: Annotated[str | None, Form(description="Address as a JSON object")] = None,
    image: Annotated[UploadFile | None, File()] = None,
) -> UserProfileResponse:
    """
    Update profile fields and optionally upload a new profile image.

    Sent as multipart form data.
    """
    changes: dict = {"name": name, "phone": phone, "dob": dob, "gender": gender}
    if address:
        try:
            changes["address"] = json.loads(address)
        except json.JSONDecodeError:
            raise ValidationException("address: must be a JSON object")
        if not isinstance(changes["address"], dict):
            raise ValidationException("address: must be a JSON object")

    profile = await accounts.update_profile(db, user_id, changes, image=await read_image(image))
    return UserProfileResponse(message="Profile updated.", profile=profile)


@router.post(
    "/chat/start",
    response_model=ChatResponse,
    status_code=status.HTTP_200_OK,
    summary="Start a chat with a doctor",
)
async def start_chat(
    request: StartChatRequest,
    user_id: CurrentUserId,
    chat_service: ChatServiceDep,
    db: DatabaseSession,
) -> ChatResponse:
    """
    Open a chat with an available doctor.

    If the pair already has a chat that is still open, that chat is returned.
    """
    chat = await chat_service.start_chat(db, user_id, request.doctor_id)
    return ChatResponse(message="Chat started.", chat=chat)


@router.post(
    "/chat/message",
    response_model=ChatResponse,
    status_code=status.HTTP_200_OK,
    summary="Send a message to the doctor",
)
async def send_message(
    request: ChatMessageRequest,
    user_id: CurrentUserId,
    chat_service: ChatServiceDep,
    db: DatabaseSession,
) -> ChatResponse:
    chat = await chat_service.append_message(
        db, request.chat_id, user_id, AccountKind.USER, request.text
    )
    return ChatResponse(message="Message sent.", chat=chat)


@router.get(
    "/chat/{chat_id}",
    response_model=ChatResponse,
    status_code=status.HTTP_200_OK,
    summary="Get a chat",
)
async def get_chat(
    chat_id: UUID,
    user_id: CurrentUserId,
    chat_service: ChatServiceDep,
    db: DatabaseSession,
) -> ChatResponse:
    """Get a chat and its messages; expired chats remain readable."""
    chat = await chat_service.get_chat(db, chat_id, user_id, AccountKind.USER)
    return ChatResponse(chat=chat)

