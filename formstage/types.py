"""Core type definitions for formstage.

This module defines the enumerations shared across the package:
- Stage: The five kinds of stage processor that can be attached to a field
- PipelineStep: The ordered steps of a single ``Form.process()`` run

Stages are the unit processors attach to; pipeline steps are what the
pipeline actually walks through, including the bookkeeping steps that
surround the five stages.
"""

from enum import Enum
from typing import List


class Stage(str, Enum):
    """Stage processor kinds.

    The declaration order is the order in which the pipeline runs them.
    """
    FILTER = "filter"
    CONSTRAINT = "constraint"
    INFLATOR = "inflator"
    VALIDATOR = "validator"
    TRANSFORMER = "transformer"


class PipelineStep(str, Enum):
    """Steps of a single processing run, in execution order."""
    BUILD_PARAMS = "build_params"
    PROCESS_FILE_UPLOADS = "process_file_uploads"
    FILTER = "filter"
    CONSTRAIN = "constrain"
    INFLATE = "inflate"
    VALIDATE = "validate"
    TRANSFORM = "transform"
    BUILD_VALID_NAMES = "build_valid_names"


# Steps that are skipped entirely once any error has been recorded
ERROR_GATED_STEPS: List[PipelineStep] = [
    PipelineStep.INFLATE,
    PipelineStep.VALIDATE,
    PipelineStep.TRANSFORM,
]


__all__ = [
    "Stage",
    "PipelineStep",
    "ERROR_GATED_STEPS",
]
