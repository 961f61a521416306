"""Tuning orchestrator.

The ``Tuner`` owns the registered kernels, the optional reference kernel and
the kernel arguments. ``tune()`` runs the reference once to capture ground
truth, then for every kernel enumerates its legal configurations, lets the
selected searcher choose which to measure, and records one ``TuningResult``
per launch.

Example:
    tuner = Tuner(backend=backend, seed=0)
    kid = tuner.add_kernel(source, "gemm", (1024, 1024), (1, 1))
    tuner.add_parameter(kid, "TS", [8, 16, 32])
    tuner.mul_local_size(kid, ("TS", "TS"))
    tuner.add_argument_input(a)
    tuner.add_argument_output(c)
    tuner.use_random_search(0.5)
    tuner.tune()
    tuner.print_to_screen()
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import numpy as np

from .backend import (
    DEFAULT_NUM_RUNS,
    ArgumentKind,
    CallableBackend,
    ExecutionBackend,
    KernelArgument,
    LaunchRequest,
)
from .device import DeviceCapabilities, detect_device, local_thread_count
from .errors import InvalidKernelIdError, KernelExecutionError, UnknownParameterError
from .kernel import KernelInfo
from .prediction import (
    SUCCESS_MARGIN,
    ModelType,
    configurations_to_features,
    create_model,
    rank_unexplored,
    split_dataset,
)
from .reporting import DEFAULT_STYLE, Console, ReportStyle
from .reporting import print_formatted as _print_formatted
from .reporting import print_json as _print_json
from .reporting import print_to_file as _print_to_file
from .reporting import print_to_screen as _print_to_screen
from .results import TuningResult, best_result
from .searchers import FAILED_TIME, SearchSettings, create_searcher
from .space import (
    Configuration,
    ConstraintFunction,
    LocalMemoryFunction,
    ModifierKind,
    Setting,
)
from .verification import Verifier

logger = logging.getLogger(__name__)


class Tuner:
    """Drives reference execution, per-kernel search and result bookkeeping.

    Args:
        backend: Executes launch requests. Defaults to an empty ``CallableBackend``.
        device: Launch limits used to drop unlaunchable configurations.
            Defaults to ``detect_device()``.
        verifier: Compares outputs against the reference run.
        seed: Seeds every random choice made during tuning and prediction.
        suppress_output: Silence the tagged console stream.
        num_runs: Timed launches per configuration; the minimum is kept.
        style: Console tags.
    """

    def __init__(
        self,
        backend: ExecutionBackend | None = None,
        device: DeviceCapabilities | None = None,
        verifier: Verifier | None = None,
        seed: int | None = None,
        suppress_output: bool = False,
        num_runs: int = DEFAULT_NUM_RUNS,
        style: ReportStyle = DEFAULT_STYLE,
    ):
        self.backend = backend if backend is not None else CallableBackend()
        self.device = device if device is not None else detect_device()
        self.verifier = verifier if verifier is not None else Verifier()
        self.rng = np.random.default_rng(seed)
        self.num_runs = num_runs
        self.console = Console(style, enabled=not suppress_output)

        self.kernels: list[KernelInfo] = []
        self.reference: KernelInfo | None = None
        self.reference_parameters: list[Setting] = []
        self.arguments: list[KernelArgument] = []
        self.search_settings = SearchSettings.full()
        self.search_log_path: Path | None = None
        self.results: list[TuningResult] = []

    # -- kernels --------------------------------------------------------------

    def add_kernel(
        self,
        source: str,
        name: str,
        global_size: Sequence[int],
        local_size: Sequence[int],
    ) -> int:
        """Register a kernel to tune and return its id."""
        self.kernels.append(KernelInfo(name, source, tuple(global_size), tuple(local_size)))
        return len(self.kernels) - 1

    def add_kernel_from_file(
        self,
        paths: Sequence[str | Path],
        name: str,
        global_size: Sequence[int],
        local_size: Sequence[int],
    ) -> int:
        self.kernels.append(KernelInfo.from_files(paths, name, global_size, local_size))
        return len(self.kernels) - 1

    def set_reference(
        self,
        source: str,
        name: str,
        global_size: Sequence[int],
        local_size: Sequence[int],
    ) -> None:
        """Set (or replace) the kernel whose outputs are taken as ground truth."""
        self.reference = KernelInfo(name, source, tuple(global_size), tuple(local_size))

    def set_reference_from_file(
        self,
        paths: Sequence[str | Path],
        name: str,
        global_size: Sequence[int],
        local_size: Sequence[int],
    ) -> None:
        self.reference = KernelInfo.from_files(paths, name, global_size, local_size)

    def add_parameter_reference(self, name: str, value: int) -> None:
        """Add a fixed definition to the reference kernel's source."""
        self.reference_parameters.append(Setting(name, int(value)))

    def prepend_source(self, kernel_id: int, source: str) -> None:
        self._kernel(kernel_id).prepend_source(source)

    def _kernel(self, kernel_id: int) -> KernelInfo:
        if not 0 <= kernel_id < len(self.kernels):
            raise InvalidKernelIdError(kernel_id)
        return self.kernels[kernel_id]

    # -- configuration space --------------------------------------------------

    def add_parameter(self, kernel_id: int, name: str, values: Sequence[int]) -> None:
        self._kernel(kernel_id).space.add_parameter(name, values)

    def add_constraint(
        self,
        kernel_id: int,
        predicate: ConstraintFunction,
        parameter_names: Sequence[str],
    ) -> None:
        kernel = self._kernel(kernel_id)
        self._check_parameters_exist(kernel, parameter_names)
        kernel.space.add_constraint(predicate, parameter_names)

    def set_local_memory_usage(
        self,
        kernel_id: int,
        amount_fn: LocalMemoryFunction,
        parameter_names: Sequence[str],
    ) -> None:
        kernel = self._kernel(kernel_id)
        self._check_parameters_exist(kernel, parameter_names)
        kernel.space.set_local_memory_estimator(amount_fn, parameter_names)

    def mul_global_size(self, kernel_id: int, dimensions: Sequence[str]) -> None:
        self._add_modifier(kernel_id, dimensions, ModifierKind.GLOBAL_MUL)

    def div_global_size(self, kernel_id: int, dimensions: Sequence[str]) -> None:
        self._add_modifier(kernel_id, dimensions, ModifierKind.GLOBAL_DIV)

    def mul_local_size(self, kernel_id: int, dimensions: Sequence[str]) -> None:
        self._add_modifier(kernel_id, dimensions, ModifierKind.LOCAL_MUL)

    def div_local_size(self, kernel_id: int, dimensions: Sequence[str]) -> None:
        self._add_modifier(kernel_id, dimensions, ModifierKind.LOCAL_DIV)

    def _add_modifier(self, kernel_id: int, dimensions: Sequence[str], kind: ModifierKind) -> None:
        kernel = self._kernel(kernel_id)
        if isinstance(dimensions, str):
            dimensions = (dimensions,)
        self._check_parameters_exist(kernel, [name for name in dimensions if name])
        kernel.space.add_thread_size_modifier(tuple(dimensions), kind)

    @staticmethod
    def _check_parameters_exist(kernel: KernelInfo, names: Sequence[str]) -> None:
        for name in names:
            if not kernel.space.parameter_exists(name):
                raise UnknownParameterError(name)

    # -- arguments ------------------------------------------------------------

    def add_argument_input(self, value: Any) -> None:
        self.arguments.append(KernelArgument(ArgumentKind.INPUT, value))

    def add_argument_output(self, value: Any) -> None:
        """Output buffers are zeroed before every launch and read back after it."""
        self.arguments.append(KernelArgument(ArgumentKind.OUTPUT, value))

    def add_argument_scalar(self, value: Any) -> None:
        self.arguments.append(KernelArgument(ArgumentKind.SCALAR, value))

    # -- search settings ------------------------------------------------------

    def use_full_search(self) -> None:
        self.search_settings = SearchSettings.full()

    def use_random_search(self, fraction: float) -> None:
        self.search_settings = SearchSettings.random(fraction)

    def use_annealing(self, fraction: float, max_temperature: float) -> None:
        self.search_settings = SearchSettings.annealing(fraction, max_temperature)

    def use_pso(
        self,
        fraction: float,
        swarm_size: int,
        influence_global: float,
        influence_local: float,
        influence_random: float,
    ) -> None:
        self.search_settings = SearchSettings.pso(
            fraction, swarm_size, influence_global, influence_local, influence_random
        )

    def output_search_log(self, path: str | Path) -> None:
        """Write each kernel's ``step;index;time`` exploration log to ``path``."""
        self.search_log_path = Path(path)

    # -- tuning ---------------------------------------------------------------

    def tune(self) -> list[TuningResult]:
        """Run the reference, then search every kernel's configuration space.

        Returns:
            All results collected so far, in execution order.
        """
        if self.reference is not None:
            self._run_reference()

        for kernel in self.kernels:
            self.console.header(f"Testing kernel {kernel.name}")
            if not kernel.has_parameters:
                self.results.append(self._run_configuration(kernel, Configuration()))
                continue
            self._search_kernel(kernel)
        return self.results

    def _run_reference(self) -> None:
        reference = self.reference
        self.console.header(f"Testing reference {reference.name}")
        defines = Configuration(tuple(self.reference_parameters))
        global_size, local_size = reference.global_base, reference.local_base
        request = self._request(
            reference.name, defines.defines() + reference.source, global_size, local_size, defines
        )
        try:
            self._check_launch(request)
            outcome = self.backend.execute(request)
        except Exception as e:
            logger.error("Reference kernel '%s' failed, results are unverified: %s", reference.name, e)
            self.console.line(self.console.style.failure, f"Reference {reference.name} failed")
            self.verifier.clear()
            return
        self.verifier.capture_reference(outcome.outputs)
        self.console.line(
            self.console.style.ok,
            f"Completed reference {reference.name} ({outcome.elapsed_ms:.1f} ms)",
        )

    def _search_kernel(self, kernel: KernelInfo) -> None:
        configurations = kernel.set_configurations(self.device)
        if not configurations:
            logger.warning("Kernel '%s' has no legal configurations", kernel.name)
            self.console.line(self.console.style.warning, f"No legal configurations for {kernel.name}")
            return

        searcher = create_searcher(
            self.search_settings,
            configurations,
            kernel.space.parameters,
            seed=self._child_seed(),
        )
        total = searcher.num_configurations()
        for step in range(total):
            config = searcher.get_configuration()
            result = self._run_configuration(kernel, config, step, total)
            searcher.push_execution_time(result.time_ms if result.status else FAILED_TIME)
            searcher.calculate_next_index()
            self.results.append(result)

        if self.search_log_path is not None:
            with open(self.search_log_path, "w") as fp:
                searcher.print_log(fp)

    def _run_configuration(
        self,
        kernel: KernelInfo,
        config: Configuration,
        step: int = 0,
        total: int = 1,
    ) -> TuningResult:
        """Execute and verify one configuration; failures become failed results."""
        style = self.console.style
        self.console.line(style.run, f"Running {kernel.name}")
        try:
            global_size, local_size = kernel.ranges_for(config)
        except ZeroDivisionError:
            logger.warning("Kernel '%s' skipped: launch size divides by zero", kernel.name)
            return TuningResult(kernel.name, math.inf, 0, False, config)

        request = self._request(
            kernel.name, kernel.source_for(config), global_size, local_size, config
        )
        try:
            self._check_launch(request)
            outcome = self.backend.execute(request)
        except Exception as e:
            logger.warning("Kernel '%s' failed for [%s]: %s", kernel.name, _describe(config), e)
            self.console.line(style.failure, f"Kernel {kernel.name} failed")
            return TuningResult(
                kernel.name, math.inf, local_thread_count(local_size), False, config
            )

        status = self.verifier.compare(outcome.outputs)
        self.console.line(
            style.ok,
            f"Completed {kernel.name} ({outcome.elapsed_ms:.1f} ms) - {step + 1} out of {total}",
        )
        result = TuningResult(kernel.name, outcome.elapsed_ms, outcome.threads, status, config)
        if not status:
            self.console.line(style.warning, f"Results differ for {_describe(config)}")
        return result

    def _request(
        self,
        kernel_name: str,
        source: str,
        global_size: Sequence[int],
        local_size: Sequence[int],
        config: Configuration,
    ) -> LaunchRequest:
        return LaunchRequest(
            kernel_name=kernel_name,
            source=source,
            global_size=tuple(global_size),
            local_size=tuple(local_size),
            defines=config.to_dict(),
            arguments=tuple(self.arguments),
            num_runs=self.num_runs,
        )

    def _check_launch(self, request: LaunchRequest) -> None:
        if not self.device.is_local_work_size_valid(request.local_size):
            raise KernelExecutionError(f"Invalid local work size {request.local_size}")
        usage = self.backend.local_memory_usage(request)
        if not self.device.is_local_memory_valid(usage):
            raise KernelExecutionError(f"Local memory usage of {usage} bytes exceeds the device limit")

    def _child_seed(self) -> int:
        return int(self.rng.integers(2**32))

    # -- prediction -----------------------------------------------------------

    def model_prediction(
        self,
        model_type: ModelType,
        validation_fraction: float,
        test_top_x: int,
    ) -> list[TuningResult]:
        """Train a model on measured results and confirm its top predictions.

        For each kernel with parameters, correct results train the model, the
        unexplored configurations are ranked by predicted time, and the
        ``test_top_x`` best are executed and appended as ordinary results.

        Raises:
            ModelError: Unsupported model or unusable layer configuration.
                Results already collected are kept.
        """
        new_results: list[TuningResult] = []
        for kernel in self.kernels:
            if not kernel.has_parameters:
                continue
            new_results.extend(
                self._predict_kernel(kernel, model_type, validation_fraction, test_top_x)
            )
        return new_results

    def _predict_kernel(
        self,
        kernel: KernelInfo,
        model_type: ModelType,
        validation_fraction: float,
        test_top_x: int,
    ) -> list[TuningResult]:
        if not kernel.configurations:
            kernel.set_configurations(self.device)
        index_of = {config.values: i for i, config in enumerate(kernel.configurations)}
        measured = [r for r in self.results if r.kernel_name == kernel.name]
        explored = {
            index_of[r.configuration.values] for r in measured if r.configuration.values in index_of
        }
        correct = [r for r in measured if r.status and not r.failed]
        if not correct:
            logger.warning("No correct results for kernel '%s', skipping prediction", kernel.name)
            return []

        x = configurations_to_features([r.configuration for r in correct])
        y = np.array([r.time_ms for r in correct], dtype=np.float64)
        x_train, y_train, x_validate, y_validate = split_dataset(
            x, y, validation_fraction, self.rng
        )

        model = create_model(model_type, x.shape[1], seed=self._child_seed())
        self.console.header(f"Training a {model_type.value} model for {kernel.name}")
        model.train(x_train, y_train)
        if len(y_validate):
            model.validate(x_validate, y_validate)
            rate = model.success_rate(x_validate, y_validate, SUCCESS_MARGIN)
            logger.info(
                "Validation success rate: %.1f%% within %.0f%%", rate, SUCCESS_MARGIN * 100
            )

        ranked = rank_unexplored(model, kernel.configurations, explored)
        new_results = []
        for step, (index, predicted) in enumerate(ranked[:test_top_x]):
            config = kernel.configurations[index]
            logger.info("Testing predicted configuration %d (%.3f ms)", index, predicted)
            result = self._run_configuration(kernel, config, step, min(test_top_x, len(ranked)))
            self.results.append(result)
            new_results.append(result)
        return new_results

    # -- results --------------------------------------------------------------

    def best_result(self, kernel_name: str | None = None) -> TuningResult | None:
        return best_result(self.results, kernel_name)

    @property
    def device_name(self) -> str:
        return getattr(self.device, "name", "unknown device")

    def print_to_screen(self) -> float:
        return _print_to_screen(self.results, self.console)

    def print_formatted(self) -> str:
        return _print_formatted(self.results, self.device_name, self.console)

    def print_to_file(self, path: str | Path) -> None:
        _print_to_file(self.results, path, self.console)

    def print_json(self, path: str | Path, descriptions: Mapping[str, str] | None = None) -> None:
        to_dict = getattr(self.device, "to_dict", None)
        device = to_dict() if to_dict is not None else {"name": self.device_name}
        _print_json(self.results, path, device, descriptions, self.console)


def _describe(config: Configuration) -> str:
    return " ".join(s.config_string() for s in config) or "no parameters"


__all__ = ["Tuner", "TuningResult", "best_result"]
