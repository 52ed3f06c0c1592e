"""Product catalog and category caches."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fittings_portal.cache.entity_cache import EntityCache
from fittings_portal.entities import Category, Product, ProductStatus
from fittings_portal.validation import FormValidationError

logger = logging.getLogger(__name__)

PLACEHOLDER_IMAGE = "/placeholder.svg?height=300&width=300&text={text}"

# Shown on first run, before anything has been saved anywhere.
SEED_CATALOG: List[Dict[str, Any]] = [
    {
        "id": "1",
        "name": "PVC Drainage Pipe 110mm",
        "description": "High-quality PVC drainage pipe, 110mm diameter, 6-meter length. "
        "Perfect for residential and commercial drainage systems.",
        "price": 45.99,
        "category": "Drainage Pipes",
        "image": PLACEHOLDER_IMAGE.format(text="PVC+Pipe+110mm"),
        "specifications": ["Diameter: 110mm", "Length: 6m", "Material: uPVC"],
        "featured": True,
    },
    {
        "id": "2",
        "name": "PVC Elbow Joint 90°",
        "description": "Durable 90-degree elbow joint for PVC pipes. "
        "Available in multiple sizes for various plumbing applications.",
        "price": 8.99,
        "category": "Pipe Fittings",
        "image": PLACEHOLDER_IMAGE.format(text="Elbow+Joint"),
        "specifications": ["Angle: 90°", "Sizes: 20mm to 110mm"],
        "featured": False,
    },
    {
        "id": "3",
        "name": "PVC Ball Valve 25mm",
        "description": "Premium quality ball valve with lever handle. "
        "Suitable for water supply and irrigation systems.",
        "price": 24.99,
        "category": "Valves",
        "image": PLACEHOLDER_IMAGE.format(text="Ball+Valve"),
        "specifications": ["Bore: 25mm", "Handle: lever", "Max pressure: 16 bar"],
        "featured": True,
    },
    {
        "id": "4",
        "name": "PVC Pressure Pipe 50mm",
        "description": "High-pressure PVC pipe for water supply systems. "
        "Meets Australian standards for potable water.",
        "price": 32.99,
        "category": "Pressure Pipes",
        "image": PLACEHOLDER_IMAGE.format(text="Pressure+Pipe"),
        "specifications": ["Diameter: 50mm", "Rated for potable water"],
        "featured": False,
    },
    {
        "id": "5",
        "name": "PVC T-Junction",
        "description": "Three-way T-junction fitting for connecting multiple pipe sections. "
        "Available in various sizes.",
        "price": 12.99,
        "category": "Pipe Fittings",
        "image": PLACEHOLDER_IMAGE.format(text="T-Junction"),
        "specifications": ["Type: equal tee", "Sizes: 20mm to 110mm"],
        "featured": False,
    },
    {
        "id": "6",
        "name": "PVC Pipe Cutter",
        "description": "Professional-grade pipe cutter for clean, precise cuts on PVC pipes "
        "up to 63mm diameter.",
        "price": 89.99,
        "category": "Tools",
        "image": PLACEHOLDER_IMAGE.format(text="Pipe+Cutter"),
        "specifications": ["Cutting capacity: up to 63mm", "Ratchet action"],
        "featured": True,
    },
    {
        "id": "7",
        "name": "PVC Solvent Cement",
        "description": "High-strength solvent cement for permanent PVC pipe joints. "
        "Fast-setting formula for quick installation.",
        "price": 16.99,
        "category": "Adhesives",
        "image": PLACEHOLDER_IMAGE.format(text="Solvent+Cement"),
        "specifications": ["Volume: 500ml", "Fast-setting"],
        "featured": False,
    },
    {
        "id": "8",
        "name": "PVC Reducer Coupling",
        "description": "Reducer coupling for connecting pipes of different diameters. "
        "Available in multiple size combinations.",
        "price": 9.99,
        "category": "Pipe Fittings",
        "image": PLACEHOLDER_IMAGE.format(text="Reducer"),
        "specifications": ["Connects two diameters", "Solvent weld sockets"],
        "featured": False,
    },
]


class ProductCache(EntityCache[Product]):
    model = Product
    table = "products"
    storage_key = "catalog-products"

    def seed(self) -> List[Dict[str, Any]]:
        now = self._clock().isoformat()
        return [
            {**item, "status": ProductStatus.ACTIVE.value, "created_at": now, "updated_at": now}
            for item in SEED_CATALOG
        ]

    def active(self) -> List[Product]:
        return [p for p in self.items if p.status == ProductStatus.ACTIVE]

    def featured(self) -> List[Product]:
        return [p for p in self.active() if p.featured]

    def search(self, query: Optional[str] = None, category: Optional[str] = None, *, include_inactive: bool = False) -> List[Product]:
        """Case-insensitive match on name/description, optional exact category."""
        products = self.items if include_inactive else self.active()
        if category:
            products = [p for p in products if p.category.lower() == category.strip().lower()]
        if query:
            q = query.strip().lower()
            products = [p for p in products if q in p.name.lower() or q in p.description.lower()]
        return products

    def categories_in_use(self) -> List[str]:
        return sorted({p.category for p in self.items})


class CategoryCache(EntityCache[Category]):
    model = Category
    table = "categories"
    storage_key = "catalog-categories"
    order_by = "name"
    descending = False

    def find(self, name: str) -> Optional[Category]:
        wanted = (name or "").strip().lower()
        for category in self.items:
            if category.name.lower() == wanted:
                return category
        return None

    async def create(self, name: str, description: Optional[str] = None) -> Category:
        cleaned = (name or "").strip()
        if not cleaned:
            raise FormValidationError(field_errors={"name": "Category name is required"})
        if self.find(cleaned) is not None:
            raise FormValidationError(field_errors={"name": f"Category '{cleaned}' already exists"})
        category = await self.add({"name": cleaned, "description": (description or "").strip() or None})
        logger.info("Category created: %s", cleaned)
        return category

    def names(self) -> List[str]:
        return [c.name for c in self.items]

