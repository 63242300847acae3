"""
Predictor Selection Configuration

Run parameters for one predictor selection pass over a table of sampled
raster values, plus reference metadata for the WorldClim bioclimatic
variables (bio1-bio19) used to label reports.

A configuration object is created per run and passed explicitly to the
selection engine; nothing here is process-wide state.
"""

import json
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Dict, List, Optional, Any, Tuple

from .exceptions import InvalidArgument

logger = logging.getLogger(__name__)

NUMERIC_FIELDS = (
    'correlation_threshold',
    'vif_threshold',
    'vif_correlation_threshold',
    'pca_variance_threshold',
    'memory_limit_gb',
)


@dataclass
class SelectionConfig:
    """Thresholds and search settings for a predictor selection run."""

    # Least-correlated subset search
    subset_size: int = 5
    subset_size_range: Optional[Tuple[int, int]] = None
    max_combinations: Optional[int] = None
    validate_matrix: bool = True

    # Input handling
    variables: Optional[List[str]] = None
    nodata_values: List[float] = field(default_factory=list)

    # Correlation analysis
    correlation_threshold: float = 0.7
    correlation_method: str = 'pearson'

    # VIF filtering (usdm-style vifstep / vifcor)
    vif_threshold: float = 10.0
    vif_correlation_threshold: float = 0.9
    use_vif_cor: bool = False

    # PCA
    pca_variance_threshold: float = 0.9

    # Processing
    memory_limit_gb: float = 8.0
    output_dir: Optional[str] = None

    def validate(self) -> 'SelectionConfig':
        """Check value types and ranges; returns self so calls can be chained."""
        for name in NUMERIC_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidArgument(f"{name} must be a number, got {value!r}")

        if isinstance(self.subset_size, bool) or not isinstance(self.subset_size, int) or self.subset_size < 2:
            raise InvalidArgument(f"subset_size must be an integer >= 2, got {self.subset_size!r}")

        if self.subset_size_range is not None:
            if not isinstance(self.subset_size_range, (tuple, list)) or len(self.subset_size_range) != 2:
                raise InvalidArgument("subset_size_range must be a (min, max) pair")
            k_min, k_max = self.subset_size_range
            if not all(isinstance(k, int) and not isinstance(k, bool) for k in (k_min, k_max)):
                raise InvalidArgument(f"subset_size_range bounds must be integers, got {self.subset_size_range!r}")
            if k_min < 2 or k_max < k_min:
                raise InvalidArgument(
                    f"subset_size_range must satisfy 2 <= min <= max, got {self.subset_size_range!r}"
                )

        if self.max_combinations is not None:
            if isinstance(self.max_combinations, bool) or not isinstance(self.max_combinations, int):
                raise InvalidArgument(f"max_combinations must be an integer, got {self.max_combinations!r}")
            if self.max_combinations < 1:
                raise InvalidArgument("max_combinations must be positive when set")

        for name in ('correlation_threshold', 'vif_correlation_threshold'):
            value = getattr(self, name)
            if not 0.0 < value <= 1.0:
                raise InvalidArgument(f"{name} must be in (0, 1], got {value}")

        if self.correlation_method not in ('pearson', 'spearman'):
            raise InvalidArgument(f"Unsupported correlation method: {self.correlation_method}")

        if self.vif_threshold <= 1.0:
            raise InvalidArgument(f"vif_threshold must be > 1, got {self.vif_threshold}")

        if not 0.0 < self.pca_variance_threshold <= 1.0:
            raise InvalidArgument(
                f"pca_variance_threshold must be in (0, 1], got {self.pca_variance_threshold}"
            )

        if self.variables is not None and len(self.variables) < 2:
            raise InvalidArgument("At least 2 variables are needed for a selection run")

        return self

    def subset_sizes(self) -> List[int]:
        """Subset sizes to search, ascending."""
        if self.subset_size_range is None:
            return [self.subset_size]
        k_min, k_max = self.subset_size_range
        return list(range(k_min, k_max + 1))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> 'SelectionConfig':
        if not isinstance(values, dict):
            raise InvalidArgument(f"Configuration must be a mapping, got {type(values).__name__}")

        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(values) - known)
        if unknown:
            logger.warning(f"Ignoring unknown configuration keys: {unknown}")

        kwargs = {key: value for key, value in values.items() if key in known}
        # JSON has no tuples
        if isinstance(kwargs.get('subset_size_range'), list):
            kwargs['subset_size_range'] = tuple(kwargs['subset_size_range'])
        return cls(**kwargs).validate()

    @classmethod
    def from_json(cls, path: str) -> 'SelectionConfig':
        config_path = Path(path)
        with open(config_path) as f:
            try:
                values = json.load(f)
            except json.JSONDecodeError as e:
                raise InvalidArgument(f"Invalid JSON in configuration file {config_path}: {e}") from e
        logger.info(f"Loaded selection configuration from {config_path}")
        return cls.from_dict(values)


class BioclimVariables:
    """WorldClim bioclimatic variable reference metadata."""

    LAYERS = {
        'bio1': ('Annual Mean Temperature', '°C'),
        'bio2': ('Mean Diurnal Range', '°C'),
        'bio3': ('Isothermality', '%'),
        'bio4': ('Temperature Seasonality', 'sd x 100'),
        'bio5': ('Max Temperature of Warmest Month', '°C'),
        'bio6': ('Min Temperature of Coldest Month', '°C'),
        'bio7': ('Temperature Annual Range', '°C'),
        'bio8': ('Mean Temperature of Wettest Quarter', '°C'),
        'bio9': ('Mean Temperature of Driest Quarter', '°C'),
        'bio10': ('Mean Temperature of Warmest Quarter', '°C'),
        'bio11': ('Mean Temperature of Coldest Quarter', '°C'),
        'bio12': ('Annual Precipitation', 'mm'),
        'bio13': ('Precipitation of Wettest Month', 'mm'),
        'bio14': ('Precipitation of Driest Month', 'mm'),
        'bio15': ('Precipitation Seasonality', 'CV'),
        'bio16': ('Precipitation of Wettest Quarter', 'mm'),
        'bio17': ('Precipitation of Driest Quarter', 'mm'),
        'bio18': ('Precipitation of Warmest Quarter', 'mm'),
        'bio19': ('Precipitation of Coldest Quarter', 'mm'),
    }

    @classmethod
    def names(cls) -> List[str]:
        return list(cls.LAYERS)

    @classmethod
    def describe(cls, variable) -> str:
        """Human-readable label; unknown identifiers come back as plain text."""
        key = str(variable).lower()
        # WorldClim 2 file stems look like 'wc2.1_30s_bio_12'
        if '_bio_' in key:
            key = 'bio' + key.rsplit('_bio_', 1)[1]
        if key not in cls.LAYERS:
            return str(variable)
        name, unit = cls.LAYERS[key]
        return f"{variable} ({name}, {unit})"
