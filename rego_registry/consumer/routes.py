from fastapi import APIRouter, Depends
from sqlmodel import Session

from rego_registry.authentication.schemas import Principal
from rego_registry.authentication.services import get_current_consumer
from rego_registry.consumer.models import Consumer
from rego_registry.consumer.schemas import ConsumerRead
from rego_registry.core.database import db
from rego_registry.core.schemas import ApiResponse

# Router initialisation
router = APIRouter(tags=["Consumers"])


@router.get("", response_model=ApiResponse[ConsumerRead])
def read_consumer(
    current_consumer: Principal = Depends(get_current_consumer),
    read_session: Session = Depends(db.get_read_session),
):
    consumer = Consumer.by_id(current_consumer.id, read_session)
    return ApiResponse(data=ConsumerRead.model_validate(consumer))
