# stdlib
from enum import Enum
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple
# projectlib
from annual_forecasting.utils.errors import ConfigurationError
from annual_forecasting.utils.typing import Row

class IssueType(str, Enum):
    """Kinds of per-field problems found while cleaning raw rows."""
    MISSING = 'missing'
    NON_NUMERIC = 'non-numeric'
    NEGATIVE_DISALLOWED = 'negative-disallowed'

class ModelFamilyName(str, Enum):
    """
    Model family identifiers.

    Note:
        ``lstm`` and ``mlp`` are accepted as aliases when parsing, see
        :meth:`ModelFamilyName.parse`.
    """
    SEQUENCE_MEMORY = 'sequence-memory'
    FEED_FORWARD = 'feed-forward'

    @classmethod
    def parse(cls, tag: str) -> "ModelFamilyName":
        """Resolve a tag or alias, raising ConfigurationError if unknown."""
        if isinstance(tag, ModelFamilyName):
            return tag
        key = str(tag).strip().lower()
        key = _FAMILY_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError as e:
            known = ", ".join(
                [m.value for m in cls] + list(_FAMILY_ALIASES)
            )
            raise ConfigurationError(
                f"Unknown model family {tag!r}; expected one of: {known}."
            ) from e

    @property
    def short_name(self) -> str:
        """File-friendly alias (``lstm`` or ``mlp``)."""
        return _FAMILY_SHORT_NAMES[self]

_FAMILY_ALIASES = {
    "lstm": ModelFamilyName.SEQUENCE_MEMORY.value,
    "mlp": ModelFamilyName.FEED_FORWARD.value,
}
_FAMILY_SHORT_NAMES = {
    ModelFamilyName.SEQUENCE_MEMORY: "lstm",
    ModelFamilyName.FEED_FORWARD: "mlp",
}

@dataclass(frozen=True)
class Issue:
    """A single problem with one field of one raw row."""
    row_index: int
    field: str
    type: IssueType

    def to_dict(self) -> Dict[str, object]:
        return {
            "row_index": self.row_index,
            "field": self.field,
            "type": self.type.value,
        }

@dataclass(frozen=True)
class PreparationOptions:
    """
    Declarative description of how raw rows become training rows.

    Parameters
    ----------
    year_key : str
        Column holding the year of each row.
    target : str
        Column to predict. May also appear in ``features``.
    features : Tuple[str, ...]
        Input columns, in the order they appear in each window vector.
    feature_defaults : Mapping[str, float], default {}
        Replacement values used for invalid fields when
        ``drop_invalid`` is False. Unlisted fields default to 0.
    required_fields : Optional[Tuple[str, ...]], default None
        Fields validated on every row. Defaults to
        ``(year_key, *features)``. The year key, every feature and the
        target are always validated even when left out.
    drop_invalid : bool, default True
        Drop rows with any issue instead of repairing them.
    allow_negative : Tuple[str, ...], default ()
        Fields permitted to hold negative values.
    """
    year_key: str
    target: str
    features: Tuple[str, ...]
    feature_defaults: Mapping[str, float] = field(default_factory=dict)
    required_fields: Optional[Tuple[str, ...]] = None
    drop_invalid: bool = True
    allow_negative: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # Accept lists from callers but store immutable tuples
        object.__setattr__(self, "features", tuple(self.features))
        object.__setattr__(
            self, "allow_negative", tuple(self.allow_negative)
        )
        object.__setattr__(
            self, "feature_defaults", dict(self.feature_defaults)
        )
        if self.required_fields is not None:
            object.__setattr__(
                self, "required_fields", tuple(self.required_fields)
            )
        self.validate()

    def validate(self) -> None:
        """
        Check the options for internal consistency.

        Raises
        ------
        ConfigurationError
            If keys are blank, the feature list is empty or contains
            duplicates, or the year key is listed as a feature.
        """
        if not self.year_key or not self.target:
            raise ConfigurationError("year_key and target must be named.")
        if not self.features:
            raise ConfigurationError("At least one feature is required.")
        if len(set(self.features)) != len(self.features):
            raise ConfigurationError(
                f"Duplicate entries in features: {list(self.features)}."
            )
        if self.year_key in self.features:
            raise ConfigurationError(
                f"Year key '{self.year_key}' cannot be used as a feature."
            )

    @property
    def value_fields(self) -> Tuple[str, ...]:
        """Features followed by the target if it is not a feature."""
        if self.target in self.features:
            return self.features
        return (*self.features, self.target)

    @property
    def effective_required_fields(self) -> Tuple[str, ...]:
        """
        Fields validated on every row, year key first.

        Features and the target are always included, whatever
        ``required_fields`` lists, since windows need numbers for them.
        """
        if self.required_fields is not None:
            fields = self.required_fields
        else:
            fields = (self.year_key, *self.features)
        missing = tuple(f for f in self.value_fields if f not in fields)
        fields = (*fields, *missing)
        if self.year_key not in fields:
            fields = (self.year_key, *fields)
        return fields

    def default_for(self, field_name: str) -> float:
        return float(self.feature_defaults.get(field_name, 0))

@dataclass(frozen=True)
class CleaningResult:
    """Output of the cleaner: surviving rows plus every issue found."""
    rows: List[Row]
    issues: List[Issue]
    discarded_count: int

    @property
    def issue_count(self) -> int:
        return len(self.issues)
