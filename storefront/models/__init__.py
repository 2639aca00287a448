"""
Init file for the catalog and filter models.
"""

from .catalog import Brand, Category, Product, SpecificationDefinition, SpecificationType
from .filters import (
    BooleanFacet,
    EnumeratedFacet,
    FacetCount,
    FacetCounts,
    FilterData,
    FilterRequest,
    NumericFacet,
    ProductsResponse,
    SortOption,
    SpecificationFacet,
    SubcategoryOption,
)

__all__ = [
    "BooleanFacet",
    "Brand",
    "Category",
    "EnumeratedFacet",
    "FacetCount",
    "FacetCounts",
    "FilterData",
    "FilterRequest",
    "NumericFacet",
    "Product",
    "ProductsResponse",
    "SortOption",
    "SpecificationDefinition",
    "SpecificationFacet",
    "SpecificationType",
    "SubcategoryOption",
]
