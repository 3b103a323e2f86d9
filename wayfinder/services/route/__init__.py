# Route service package
from .assembler import RouteAssembler
from .generation_service import RouteGenerationService
from .response_builder import ResponseBuilderService
from .search_controller import AdaptiveSearchController


__all__ = [
    "AdaptiveSearchController",
    "RouteAssembler",
    "RouteGenerationService",
    "ResponseBuilderService",
]
