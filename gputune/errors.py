"""Custom exceptions for gputune."""


class GpuTuneError(Exception):
    """Base exception for tuning errors."""
    error_type: str = "tuning_error"


class ConfigurationError(GpuTuneError, ValueError):
    """Raised during setup when the tuning problem is malformed."""
    error_type = "configuration_error"


class DuplicateParameterError(ConfigurationError):
    """Raised when a parameter name is declared twice for one kernel."""
    error_type = "duplicate_parameter"

    def __init__(self, name: str):
        super().__init__(f"Parameter '{name}' already exists")
        self.name = name


class UnknownParameterError(ConfigurationError):
    """Raised when a constraint or modifier references an undeclared parameter."""
    error_type = "unknown_parameter"

    def __init__(self, name: str):
        super().__init__(f"Invalid parameter '{name}'")
        self.name = name


class UnresolvedModifierError(ConfigurationError):
    """Raised when a thread-size modifier names no bound parameter."""
    error_type = "unresolved_modifier"


class MalformedConstraintError(ConfigurationError):
    """Raised when a constraint cannot be parsed or resolved against a configuration."""
    error_type = "malformed_constraint"


class InvalidKernelIdError(ConfigurationError):
    """Raised when a kernel id does not refer to a registered kernel."""
    error_type = "invalid_kernel_id"

    def __init__(self, kernel_id: int):
        super().__init__(f"Invalid kernel ID {kernel_id}")
        self.kernel_id = kernel_id


class KernelExecutionError(GpuTuneError, RuntimeError):
    """Raised by a backend when compiling, launching or running a kernel fails."""
    error_type = "execution_error"


class ModelError(GpuTuneError):
    """Raised when the performance-prediction phase cannot proceed."""
    error_type = "model_error"


class UnsupportedModelError(ModelError):
    """Raised for an unknown model type."""
    error_type = "unsupported_model"


class LayerConfigurationError(ModelError):
    """Raised when a neural network's layer sizes are not usable."""
    error_type = "layer_configuration"
