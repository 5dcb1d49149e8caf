from typing import List
from models import db
from models.address import Address
from app.utils.db import transactional


def list_addresses(user_id: str) -> List[Address]:
    return (
        Address.query.filter_by(user_id=user_id)
        .order_by(Address.is_default.desc(), Address.created_at.asc())
        .all()
    )


def get_address(user_id: str, address_id: str):
    return Address.query.filter_by(user_id=user_id, id=address_id).first()


def insert_address(user_id: str, fields: dict, is_default: bool = False) -> str:
    address = Address(
        user_id=user_id,
        street=fields["street"],
        city=fields["city"],
        postal_code=fields["postal_code"],
        phone=fields["phone"],
        label=fields.get("label"),
        is_default=is_default,
    )
    with transactional("Failed to save address"):
        if is_default:
            # At most one default per user
            Address.query.filter_by(user_id=user_id, is_default=True).update({"is_default": False})
        db.session.add(address)
    return address.id
