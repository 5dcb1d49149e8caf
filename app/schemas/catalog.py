from typing import Optional
from pydantic import BaseModel, constr


class ProductQuery(BaseModel):
    category: Optional[constr(strip_whitespace=True, max_length=50)] = None
