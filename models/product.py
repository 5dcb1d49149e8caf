# --- models/product.py ---
from models import db, new_id
from datetime import datetime


class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    # Core details
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(50), nullable=False, index=True)  # fruits, dairy, bakery...
    unit = db.Column(db.String(30), nullable=False, default="each")  # per lb, 1 dozen, 500g

    # Pricing
    price = db.Column(db.Numeric(10, 2), nullable=False)              # Selling price
    original_price = db.Column(db.Numeric(10, 2), nullable=True)      # Pre-discount price

    # Availability & display
    in_stock = db.Column(db.Boolean, nullable=False, default=True)
    rating = db.Column(db.Float, nullable=False, default=0.0)
    image_url = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Product {self.name} price={self.price}>"
