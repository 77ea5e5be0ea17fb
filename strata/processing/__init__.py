"""
Getting documents annotated: annotators, their registry and cache,
dependency resolution (`process`) and the concurrent corpus
`Pipeline`
"""

from .annotator import (Annotator,
                        AnnotatorCache,
                        AnnotatorMismatchError,
                        AnnotatorRegistry,
                        GoldStandardError,
                        NoAnnotatorError,
                        ResolutionCycleError,
                        CACHE,
                        REGISTRY,
                        process,
                        process_with)
from .pipeline import Pipeline, PartitionWriter
