"""
Result structures for snake segmentation.
"""

from .segmentation_result import SnakeStatus, SegmentationResult

__all__ = ['SnakeStatus', 'SegmentationResult']
