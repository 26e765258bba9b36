"""vegscan: vegetation masks and RGB vegetation indices for photos.

Example:
    >>> import vegscan as vs
    >>>
    >>> # One image, automatic threshold
    >>> pixels = vs.read_image("plot_01.jpg")
    >>> result = vs.analyze(pixels)
    >>> print(f"Coverage: {result.vegetation_coverage:.2f}%")
    >>>
    >>> # A batch exported to CSV
    >>> records = vs.run_batch(images, "exg", 0.1, ["ExG", "GLI"])
    >>> Path("out.csv").write_bytes(vs.export_csv(records, ["ExG", "GLI"], "exg", 0.1))
"""

from vegscan.__about__ import __version__
from vegscan._types import ThresholdMethod
from vegscan.api import (
    analyze,
    analyze_files,
    analyze_image,
    compute_threshold,
    export_csv,
    run_batch,
)
from vegscan.config import Config, configure
from vegscan.exceptions import (
    BatchAbortedError,
    ConfigurationError,
    DecodeError,
    InvalidInputError,
    VegScanError,
)
from vegscan.indices import INDEX_KEYS, INDICES, IndexDefinition
from vegscan.reader import read_image
from vegscan.results import AnalysisResult, BatchRecord, records_to_dataframe

__all__ = [
    # Version
    "__version__",
    # Engine
    "analyze",
    "analyze_files",
    "analyze_image",
    "compute_threshold",
    "export_csv",
    "run_batch",
    "read_image",
    # Index library
    "INDEX_KEYS",
    "INDICES",
    "IndexDefinition",
    "ThresholdMethod",
    # Configuration
    "Config",
    "configure",
    # Results
    "AnalysisResult",
    "BatchRecord",
    "records_to_dataframe",
    # Exceptions
    "BatchAbortedError",
    "ConfigurationError",
    "DecodeError",
    "InvalidInputError",
    "VegScanError",
]
