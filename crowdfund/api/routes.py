"""
API routes for the crowdfunding platform.

Handlers translate HTTP input into service calls and wrap results in the
response envelope. Domain errors propagate to the exception handlers in
api.main.
"""
from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from crowdfund.auth.policy import ADMIN_ONLY, USER_ONLY, USER_OR_ADMIN, Principal
from crowdfund.core.auth import AuthService
from crowdfund.core.campaigns import CampaignService
from crowdfund.core.errors import PermissionDeniedError
from crowdfund.core.pagination import DEFAULT_PAGE, DEFAULT_SIZE
from crowdfund.core.transactions import PaymentNotification, TransactionService
from crowdfund.core.users import UserService
from crowdfund.integrations.file_storage import (
    AVATARS_FOLDER,
    CAMPAIGNS_FOLDER,
    LocalFileStorage,
    image_extension,
)
from crowdfund.integrations.notification_handler import NotificationHandler
from crowdfund.monitoring.health import HealthCheck

from .dependencies import (
    get_auth_service,
    get_campaign_service,
    get_file_storage,
    get_notification_handler,
    get_transaction_service,
    get_user_service,
)
from .responses import many_response, single_response
from .schemas import (
    CampaignImageResponse,
    CampaignResponse,
    CheckEmailRequest,
    CreateCampaignRequest,
    CreateTransactionRequest,
    EmailAvailabilityResponse,
    HealthCheckResponse,
    LoginRequest,
    LoginResponse,
    NotificationResponse,
    PaymentNotificationRequest,
    RegisterUserRequest,
    TransactionResponse,
    UpdateCampaignRequest,
    UpdateTransactionRequest,
    UpdateUserRequest,
    UserResponse,
)

logger = structlog.get_logger(__name__)

# Create routers
auth_router = APIRouter(tags=["auth"])
user_router = APIRouter(tags=["users"])
campaign_router = APIRouter(tags=["campaigns"])
transaction_router = APIRouter(tags=["transactions"])
monitoring_router = APIRouter(tags=["monitoring"])

health_check = HealthCheck()


# Auth


@auth_router.post("/auth/login", summary="Log in and obtain a bearer token")
async def login(
    request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    token = await auth_service.login(request.email, request.password)
    return single_response(LoginResponse(token=token), "Success Login")


# Users


@user_router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    summary="Register a user",
)
async def register(
    request: RegisterUserRequest,
    user_service: UserService = Depends(get_user_service),
) -> JSONResponse:
    user = await user_service.register_user(
        name=request.name,
        occupation=request.occupation,
        email=request.email,
        password=request.password,
    )
    return single_response(
        UserResponse.model_validate(user),
        "User registered successfully",
        status_code=status.HTTP_201_CREATED,
    )


@user_router.post("/users/check-email", summary="Check whether an email is free")
async def check_email(
    request: CheckEmailRequest,
    user_service: UserService = Depends(get_user_service),
) -> JSONResponse:
    is_available = await user_service.is_email_available(request.email)
    return single_response(EmailAvailabilityResponse(is_available=is_available), "ok")


@user_router.get("/users", summary="List users")
async def list_users(
    page: int = Query(DEFAULT_PAGE),
    size: int = Query(DEFAULT_SIZE),
    principal: Principal = Depends(USER_ONLY),
    user_service: UserService = Depends(get_user_service),
) -> JSONResponse:
    users, paging = await user_service.find_all(page, size)
    return many_response((UserResponse.model_validate(u) for u in users), paging, "ok")


@user_router.get("/users/{user_id}", summary="Get a user")
async def get_user(
    user_id: int,
    principal: Principal = Depends(USER_OR_ADMIN),
    user_service: UserService = Depends(get_user_service),
) -> JSONResponse:
    user = await user_service.find_by_id(user_id)
    return single_response(UserResponse.model_validate(user), "ok")


@user_router.put("/users/{user_id}", summary="Update a profile (self or admin)")
async def update_user(
    user_id: int,
    request: UpdateUserRequest,
    principal: Principal = Depends(USER_OR_ADMIN),
    user_service: UserService = Depends(get_user_service),
) -> JSONResponse:
    user = await user_service.update_user(
        user_id, request.model_dump(exclude_unset=True), principal
    )
    return single_response(UserResponse.model_validate(user), "User updated successfully")


@user_router.post("/users/{user_id}/avatar", summary="Upload an avatar (self)")
async def upload_avatar(
    user_id: int,
    avatar: UploadFile = File(...),
    principal: Principal = Depends(USER_ONLY),
    user_service: UserService = Depends(get_user_service),
    storage: LocalFileStorage = Depends(get_file_storage),
) -> JSONResponse:
    image_extension(avatar.filename)
    if not principal.can_act_for(user_id):
        raise PermissionDeniedError("You can only change your own avatar")

    async with storage.stored(avatar, AVATARS_FOLDER) as file_location:
        user = await user_service.save_avatar(user_id, file_location, principal)
    return single_response(UserResponse.model_validate(user), "Avatar saved successfully")


# Campaigns


@campaign_router.get("/campaigns", summary="List campaigns")
async def list_campaigns(
    page: int = Query(DEFAULT_PAGE),
    size: int = Query(DEFAULT_SIZE),
    user_id: Optional[int] = Query(default=None, description="Only this owner's campaigns"),
    campaign_service: CampaignService = Depends(get_campaign_service),
) -> JSONResponse:
    campaigns, paging = await campaign_service.find_all_campaigns(page, size, user_id=user_id)
    return many_response(
        (CampaignResponse.from_campaign(c) for c in campaigns),
        paging,
        "Campaigns retrieved successfully",
    )


@campaign_router.post(
    "/campaigns",
    status_code=status.HTTP_201_CREATED,
    summary="Create a campaign owned by the caller",
)
async def create_campaign(
    request: CreateCampaignRequest,
    principal: Principal = Depends(USER_OR_ADMIN),
    campaign_service: CampaignService = Depends(get_campaign_service),
) -> JSONResponse:
    campaign = await campaign_service.create_campaign(request.model_dump(), principal.user_id)
    return single_response(
        CampaignResponse.from_campaign(campaign),
        "Campaign created successfully",
        status_code=status.HTTP_201_CREATED,
    )


@campaign_router.get("/campaigns/{campaign_id}", summary="Get a campaign")
async def get_campaign(
    campaign_id: int,
    principal: Principal = Depends(USER_OR_ADMIN),
    campaign_service: CampaignService = Depends(get_campaign_service),
) -> JSONResponse:
    campaign = await campaign_service.find_campaign_by_id(campaign_id)
    return single_response(
        CampaignResponse.from_campaign(campaign), "Campaign retrieved successfully"
    )


@campaign_router.put("/campaigns/{campaign_id}", summary="Update a campaign (owner or admin)")
async def update_campaign(
    campaign_id: int,
    request: UpdateCampaignRequest,
    principal: Principal = Depends(USER_OR_ADMIN),
    campaign_service: CampaignService = Depends(get_campaign_service),
) -> JSONResponse:
    campaign = await campaign_service.update_campaign(
        campaign_id, request.model_dump(exclude_unset=True), principal
    )
    return single_response(
        CampaignResponse.from_campaign(campaign), "Campaign updated successfully"
    )


@campaign_router.delete("/campaigns/{campaign_id}", summary="Delete a campaign (owner or admin)")
async def delete_campaign(
    campaign_id: int,
    principal: Principal = Depends(USER_OR_ADMIN),
    campaign_service: CampaignService = Depends(get_campaign_service),
) -> JSONResponse:
    await campaign_service.delete_campaign(campaign_id, principal)
    return single_response(None, "Campaign deleted successfully")


@campaign_router.post(
    "/campaigns/{campaign_id}/images",
    status_code=status.HTTP_201_CREATED,
    summary="Upload a campaign image (owner or admin)",
)
async def upload_campaign_image(
    campaign_id: int,
    file: UploadFile = File(...),
    is_primary: bool = Form(default=False),
    principal: Principal = Depends(USER_OR_ADMIN),
    campaign_service: CampaignService = Depends(get_campaign_service),
    storage: LocalFileStorage = Depends(get_file_storage),
) -> JSONResponse:
    image_extension(file.filename)
    await campaign_service.find_owned_campaign(campaign_id, principal)

    async with storage.stored(file, CAMPAIGNS_FOLDER) as file_location:
        image = await campaign_service.save_campaign_image(
            campaign_id, file_location, is_primary, principal
        )
    return single_response(
        CampaignImageResponse.model_validate(image),
        "Campaign image saved successfully",
        status_code=status.HTTP_201_CREATED,
    )


# Transactions


@transaction_router.get(
    "/campaigns/{campaign_id}/transactions", summary="List a campaign's transactions"
)
async def list_campaign_transactions(
    campaign_id: int,
    principal: Principal = Depends(USER_OR_ADMIN),
    transaction_service: TransactionService = Depends(get_transaction_service),
) -> JSONResponse:
    transactions = await transaction_service.get_transactions_by_campaign_id(campaign_id)
    return many_response(
        (TransactionResponse.from_transaction(t) for t in transactions),
        None,
        "Campaign transactions retrieved successfully",
    )


@transaction_router.get("/users/{user_id}/transactions", summary="List a user's transactions")
async def list_user_transactions(
    user_id: int,
    principal: Principal = Depends(USER_OR_ADMIN),
    transaction_service: TransactionService = Depends(get_transaction_service),
) -> JSONResponse:
    transactions = await transaction_service.get_transactions_by_user_id(user_id)
    return many_response(
        (TransactionResponse.from_transaction(t) for t in transactions),
        None,
        "User transactions retrieved successfully",
    )


@transaction_router.get("/transactions", summary="List all transactions (admin)")
async def list_transactions(
    page: int = Query(DEFAULT_PAGE),
    size: int = Query(DEFAULT_SIZE),
    principal: Principal = Depends(ADMIN_ONLY),
    transaction_service: TransactionService = Depends(get_transaction_service),
) -> JSONResponse:
    transactions, paging = await transaction_service.get_all_transactions(page, size)
    return many_response(
        (TransactionResponse.from_transaction(t) for t in transactions),
        paging,
        "Transactions retrieved successfully",
    )


@transaction_router.post(
    "/transactions/notification",
    summary="Midtrans payment notification webhook",
)
async def payment_notification(
    request: PaymentNotificationRequest,
    handler: NotificationHandler = Depends(get_notification_handler),
) -> JSONResponse:
    """
    Handle a Midtrans notification.

    The notification is confirmed with Midtrans before any status changes;
    unconfirmed notifications are answered with 401.
    """
    notification = PaymentNotification(
        order_id=request.order_id,
        transaction_status=request.transaction_status,
        payment_type=request.payment_type,
        fraud_status=request.fraud_status,
    )
    outcome = await handler.handle(notification)

    transaction = outcome["transaction"]
    return single_response(
        NotificationResponse(
            result=outcome["result"],
            transaction=(
                TransactionResponse.from_transaction(transaction)
                if transaction is not None
                else None
            ),
        ),
        "Transaction status updated",
    )


@transaction_router.get("/transactions/{transaction_id}", summary="Get a transaction")
async def get_transaction(
    transaction_id: int,
    principal: Principal = Depends(USER_OR_ADMIN),
    transaction_service: TransactionService = Depends(get_transaction_service),
) -> JSONResponse:
    transaction = await transaction_service.get_transaction_by_id(transaction_id)
    return single_response(
        TransactionResponse.from_transaction(transaction), "Transaction retrieved successfully"
    )


@transaction_router.post(
    "/transactions",
    status_code=status.HTTP_201_CREATED,
    summary="Back a campaign and obtain a payment URL",
)
async def create_transaction(
    request: CreateTransactionRequest,
    principal: Principal = Depends(USER_OR_ADMIN),
    user_service: UserService = Depends(get_user_service),
    transaction_service: TransactionService = Depends(get_transaction_service),
) -> JSONResponse:
    user = await user_service.find_by_id(principal.user_id)
    transaction = await transaction_service.create_transaction(
        request.campaign_id, request.amount, user
    )
    return single_response(
        TransactionResponse.from_transaction(transaction),
        "Transaction created successfully",
        status_code=status.HTTP_201_CREATED,
    )


@transaction_router.put("/transactions/{transaction_id}", summary="Set a transaction's status")
async def update_transaction(
    transaction_id: int,
    request: UpdateTransactionRequest,
    principal: Principal = Depends(USER_OR_ADMIN),
    transaction_service: TransactionService = Depends(get_transaction_service),
) -> JSONResponse:
    transaction = await transaction_service.update_transaction(
        transaction_id, request.status, principal
    )
    return single_response(
        TransactionResponse.from_transaction(transaction), "Transaction updated successfully"
    )


# Monitoring


@monitoring_router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Health check",
    description="Check overall system health",
)
async def health() -> Dict[str, Any]:
    return await health_check.check_all()


@monitoring_router.get(
    "/health/live",
    response_model=HealthCheckResponse,
    summary="Liveness check",
)
async def liveness() -> Dict[str, Any]:
    return await health_check.liveness()


@monitoring_router.get(
    "/health/ready",
    response_model=HealthCheckResponse,
    summary="Readiness check",
)
async def readiness() -> Dict[str, Any]:
    result = await health_check.readiness()
    if result["status"] != "healthy":
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=result)
    return result


@monitoring_router.get(
    "/metrics",
    summary="Prometheus metrics",
    include_in_schema=False,
)
async def prometheus_metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
