"""gputune: autotuning of GPU compute kernels.

Declare tunable parameters for a kernel, let a search strategy pick which
configurations to run, and keep the fastest one whose output matches a
reference kernel.

Quick Start:
    from gputune import CallableBackend, Tuner

    backend = CallableBackend()
    backend.register("reference", reference_fn)
    backend.register("tiled", tiled_fn)

    tuner = Tuner(backend=backend, seed=0)
    tuner.set_reference(ref_source, "reference", (256,), (1,))
    kid = tuner.add_kernel(source, "tiled", (256,), (1,))
    tuner.add_parameter(kid, "TS", [16, 32, 64])
    tuner.add_argument_input(a)
    tuner.add_argument_output(out)
    tuner.tune()
    tuner.print_to_screen()
"""

from ._compat import HAS_CUDA, HAS_MPS, HAS_TORCH
from .backend import (
    DEFAULT_NUM_RUNS,
    ArgumentKind,
    CallableBackend,
    ExecutionBackend,
    ExecutionOutcome,
    KernelArgument,
    LaunchRequest,
)
from .device import DeviceCapabilities, DeviceInfo, detect_device
from .errors import (
    ConfigurationError,
    DuplicateParameterError,
    GpuTuneError,
    InvalidKernelIdError,
    KernelExecutionError,
    LayerConfigurationError,
    MalformedConstraintError,
    ModelError,
    UnknownParameterError,
    UnresolvedModifierError,
    UnsupportedModelError,
)
from .expressions import ConstraintExpression
from .kernel import KernelInfo
from .models import LinearRegression, MLModel, NeuralNetwork
from .prediction import ModelType
from .reporting import ReportStyle
from .results import TuningResult, best_result
from .searchers import (
    PSO,
    Annealing,
    FullSearch,
    RandomSearch,
    Searcher,
    SearchMethod,
    SearchSettings,
    create_searcher,
)
from .space import (
    Configuration,
    ModifierKind,
    Parameter,
    ParameterSpace,
    Setting,
)
from .tuner import Tuner
from .verification import MAX_L2_NORM, Verifier

__version__ = "0.1.0"

__all__ = [
    "Annealing",
    "ArgumentKind",
    "CallableBackend",
    "Configuration",
    "ConfigurationError",
    "ConstraintExpression",
    "DEFAULT_NUM_RUNS",
    "DeviceCapabilities",
    "DeviceInfo",
    "DuplicateParameterError",
    "ExecutionBackend",
    "ExecutionOutcome",
    "FullSearch",
    "GpuTuneError",
    "HAS_CUDA",
    "HAS_MPS",
    "HAS_TORCH",
    "InvalidKernelIdError",
    "KernelArgument",
    "KernelExecutionError",
    "KernelInfo",
    "LaunchRequest",
    "LayerConfigurationError",
    "LinearRegression",
    "MAX_L2_NORM",
    "MLModel",
    "MalformedConstraintError",
    "ModelError",
    "ModelType",
    "ModifierKind",
    "NeuralNetwork",
    "PSO",
    "Parameter",
    "ParameterSpace",
    "RandomSearch",
    "ReportStyle",
    "SearchMethod",
    "SearchSettings",
    "Searcher",
    "Setting",
    "Tuner",
    "TuningResult",
    "UnknownParameterError",
    "UnresolvedModifierError",
    "UnsupportedModelError",
    "Verifier",
    "best_result",
    "create_searcher",
    "detect_device",
]
