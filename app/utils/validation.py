from functools import wraps
from flask import request
from pydantic import ValidationError
from .responses import validation_error_response, error


def _payload(source):
    if source == "args":
        return request.args.to_dict()
    data = request.get_json(silent=True)
    if data is None:
        return {}
    return data


def validate_schema(schema, source="json"):
    """Validate the JSON body (or query string) against a Pydantic schema.

    The parsed model is stored on ``request.validated_data``.
    """

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            data = _payload(source)
            if not isinstance(data, dict):
                return error("Request body must be a JSON object", status=400)
            try:
                obj = schema(**data)
            except ValidationError as ve:
                return validation_error_response(ve.errors())
            request.validated_data = obj
            return fn(*args, **kwargs)
        return wrapper

    return decorator
