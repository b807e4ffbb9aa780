"""
Product model for stock-keeping units.

A product is counted and costed in its purchase unit ("bag", "bottle",
"kg"). The optional size describes what one purchase unit holds, which is
what lets a recipe quantity in cups or grams be turned into a fraction of
a purchase unit.

Example: "Jasmine Rice" purchased by the "bag", sized 25 lb, $31.50 per bag.
"""

from typing import Optional

from sqlalchemy import CheckConstraint, Column, Float, Index, String, Text

from .base import BaseModel


class Product(BaseModel):
    """
    Product model representing one stock-keeping unit of a restaurant.

    Attributes:
        restaurant_id: Owning restaurant identifier
        name: Display name
        purchase_unit: Unit stock is counted in (bag, bottle, kg, ...)
        size_value: Quantity of raw mass/volume/count in one purchase unit
        size_unit: Unit of size_value (lb, ml, each, ...)
        cost_per_unit: Cost of one purchase unit
        current_stock: Stock on hand in purchase units. Only the ledger
            writer changes this value.
        density_volume_value / density_volume_unit /
        density_weight_value / density_weight_unit:
            Optional density, e.g. "1 cup = 120 g" stored as
            (1.0, "cup", 120.0, "g")
        notes: Free-form notes
    """

    __tablename__ = "products"

    restaurant_id = Column(String(64), nullable=False, index=True)
    name = Column(String(200), nullable=False)

    # Purchase unit and capacity of one purchase unit
    purchase_unit = Column(String(50), nullable=False)
    size_value = Column(Float, nullable=True)
    size_unit = Column(String(50), nullable=True)

    cost_per_unit = Column(Float, nullable=False, default=0.0)
    current_stock = Column(Float, nullable=False, default=0.0)

    # Density specification (4-field model)
    density_volume_value = Column(Float, nullable=True)
    density_volume_unit = Column(String(20), nullable=True)
    density_weight_value = Column(Float, nullable=True)
    density_weight_unit = Column(String(20), nullable=True)

    notes = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_product_restaurant_name", "restaurant_id", "name"),
        CheckConstraint("cost_per_unit >= 0", name="ck_product_cost_non_negative"),
        CheckConstraint(
            "size_value IS NULL OR size_value > 0", name="ck_product_size_positive"
        ),
    )

    def get_density_g_per_ml(self) -> Optional[float]:
        """
        Calculate density in g/ml from the 4-field specification.

        Returns:
            Density in grams per milliliter, or None if density not specified
            or not expressible in mass and volume units.
        """
        if not all(
            [
                self.density_volume_value,
                self.density_volume_unit,
                self.density_weight_value,
                self.density_weight_unit,
            ]
        ):
            return None

        # Imported here to keep models free of service imports at load time
        from prep_ledger.services.unit_converter import to_grams, to_milliliters

        ml = to_milliliters(self.density_volume_value, self.density_volume_unit)
        grams = to_grams(self.density_weight_value, self.density_weight_unit)
        if not ml or not grams or ml <= 0 or grams <= 0:
            return None

        return grams / ml

    @property
    def size_display(self) -> str:
        """E.g. "bag (50 each)" or just "kg" when no size is declared."""
        if self.size_value and self.size_unit:
            return f"{self.purchase_unit} ({self.size_value:g} {self.size_unit})"
        return self.purchase_unit

    def to_dict(self, include_relationships: bool = False) -> dict:
        """Convert product to dictionary, adding display helpers."""
        result = super().to_dict(include_relationships)
        result["size_display"] = self.size_display
        result["density_g_per_ml"] = self.get_density_g_per_ml()
        return result
