"""
Prep recipe blueprint models.

A prep recipe lists the ingredient products (with quantity and unit) needed
to make its default yield, and optionally names the product the batch is
stocked as. The output product can itself be an ingredient of another prep
recipe; each production run is costed independently against the shared
product stock.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship, validates

from .base import BaseModel


class PrepRecipe(BaseModel):
    """
    Blueprint for producing a batch of prepared food.

    Attributes:
        restaurant_id: Owning restaurant identifier
        name: Recipe name
        default_yield: Quantity one batch of the listed ingredients makes
        default_yield_unit: Unit of default_yield
        output_product_id: Product credited with the batch output, or None
            when the batch is consumed directly
        notes: Free-form notes
    """

    __tablename__ = "prep_recipes"

    restaurant_id = Column(String(64), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    default_yield = Column(Float, nullable=False)
    default_yield_unit = Column(String(50), nullable=False)
    output_product_id = Column(
        Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    notes = Column(Text, nullable=True)

    # Relationships
    output_product = relationship("Product", lazy="joined")
    ingredients = relationship(
        "PrepRecipeIngredient",
        back_populates="prep_recipe",
        cascade="all, delete-orphan",
        order_by="PrepRecipeIngredient.sort_order",
    )
    production_runs = relationship("ProductionRun", back_populates="prep_recipe")

    __table_args__ = (
        CheckConstraint("default_yield > 0", name="ck_prep_recipe_default_yield_positive"),
    )

    def to_dict(self, include_relationships: bool = False) -> dict:
        """Convert prep recipe to dictionary, always including its lines."""
        result = super().to_dict(include_relationships=False)
        result["ingredients"] = [line.to_dict() for line in self.ingredients]
        if include_relationships and self.output_product:
            result["output_product"] = self.output_product.to_dict()
        return result


class PrepRecipeIngredient(BaseModel):
    """
    One ingredient line of a prep recipe.

    Attributes:
        prep_recipe_id: Parent recipe
        product_id: Ingredient product
        quantity: Amount per default yield (must be > 0)
        unit: Unit of quantity (any unit; converted at completion)
        sort_order: Position of the line within the recipe
    """

    __tablename__ = "prep_recipe_ingredients"

    prep_recipe_id = Column(
        Integer, ForeignKey("prep_recipes.id", ondelete="CASCADE"), nullable=False
    )
    product_id = Column(
        Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False
    )
    quantity = Column(Float, nullable=False)
    unit = Column(String(50), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)

    # Relationships
    prep_recipe = relationship("PrepRecipe", back_populates="ingredients")
    product = relationship("Product", lazy="joined")

    __table_args__ = (
        Index("idx_prep_recipe_ingredient_recipe", "prep_recipe_id"),
        CheckConstraint("quantity > 0", name="ck_prep_recipe_ingredient_quantity_positive"),
    )

    @validates("quantity")
    def _validate_quantity(self, _key, value):
        if value is None or value <= 0:
            raise ValueError(f"Ingredient quantity must be positive, got {value}")
        return value

    def __repr__(self) -> str:
        return (
            f"PrepRecipeIngredient(id={self.id}, product_id={self.product_id}, "
            f"quantity={self.quantity}, unit='{self.unit}')"
        )
