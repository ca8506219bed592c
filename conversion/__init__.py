"""
Layer 4: Conversion Pipeline

Schedules parsing, merging and generation across source units.
"""

from conversion.pipeline import ConversionResult, FileOutput, convert

__all__ = [
    "ConversionResult",
    "FileOutput",
    "convert",
]
