"""
Numerical building blocks for snake energies and optimizers.
"""

from .finite_differences import circulant_stencil, block_diagonal, cross_coupling_matrix
from .intensity import normalize_intensities, value_range_mapping, map_range, to_channels
from .fields import (
    rescale,
    squared_gradient_magnitude,
    distance_field,
    gradient_vector_flow,
    reconstruct_potential,
)
from .rasterize import label_image, pixel_indices

__all__ = [
    'circulant_stencil', 'block_diagonal', 'cross_coupling_matrix',
    'normalize_intensities', 'value_range_mapping', 'map_range', 'to_channels',
    'rescale', 'squared_gradient_magnitude', 'distance_field',
    'gradient_vector_flow', 'reconstruct_potential',
    'label_image', 'pixel_indices',
]
