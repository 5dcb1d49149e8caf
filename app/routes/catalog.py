from flask import Blueprint, request
from app.version import API_PREFIX
from app.services import catalog
from app.schemas.catalog import ProductQuery
from app.utils import ok, validate_schema

catalog_bp = Blueprint("catalog", __name__, url_prefix=API_PREFIX)


@catalog_bp.route("/products", methods=["GET"])
@validate_schema(ProductQuery, source="args")
def list_products():
    data: ProductQuery = request.validated_data
    category = data.category or None
    products = catalog.list_products(category=category)
    return ok({"products": [p.to_dict() for p in products]})


@catalog_bp.route("/products/<product_id>", methods=["GET"])
def get_product(product_id):
    return ok({"product": catalog.get_product(product_id).to_dict()})


@catalog_bp.route("/categories", methods=["GET"])
def list_categories():
    return ok({"categories": catalog.list_categories()})
