from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from app.core.exceptions import WebhookRejectedError
from app.deps import get_fulfillment_service, get_webhook_gateway
from app.services import checkout as checkout_service
from app.services.fulfillment import OrderFulfillmentService
from app.services.payments import PaymentGateway

router = APIRouter()


@router.post("/{provider}", response_class=PlainTextResponse)
async def payment_webhook(
    request: Request,
    gateway: PaymentGateway = Depends(get_webhook_gateway),
    fulfillment: OrderFulfillmentService = Depends(get_fulfillment_service),
):
    """Provider webhook: payment succeeded -> paid -> fulfill. Plain-text ack."""
    body = await request.body()
    signature = request.headers.get(gateway.signature_header)
    try:
        ack = await checkout_service.handle_webhook(gateway, body, signature, fulfillment)
    except WebhookRejectedError as e:
        return PlainTextResponse(e.message, status_code=e.status_code)
    return PlainTextResponse(ack)
