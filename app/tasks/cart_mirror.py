import logging
from celery import shared_task
from sqlalchemy.exc import OperationalError
from app.services import cart_lines

logger = logging.getLogger(__name__)

UPSERT = "upsert"
DELETE = "delete"


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=2,
    autoretry_for=(OperationalError,),
    retry_backoff=True,
    retry_jitter=False,
)
def mirror_cart_write_task(self, op: str, user_id: str, product_id: str, quantity: int = 0) -> None:
    """Apply one best-effort cart mirror write to durable storage."""
    if op == UPSERT and quantity > 0:
        cart_lines.upsert_cart_line(user_id, product_id, quantity)
    elif op in (UPSERT, DELETE):
        cart_lines.delete_cart_line(user_id, product_id)
    else:
        raise ValueError(f"unknown cart mirror op {op!r}")
    logger.debug("cart mirror %s applied for product %s", op, product_id)
