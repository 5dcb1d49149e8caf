from pydantic import BaseModel, constr


class AddToCartRequest(BaseModel):
    product_id: constr(strip_whitespace=True, min_length=1)


class UpdateQuantityRequest(BaseModel):
    # Zero or negative removes the line
    quantity: int
