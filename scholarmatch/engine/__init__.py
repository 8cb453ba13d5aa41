# scholarmatch/engine/__init__.py
from .conditions import ConditionValidationError, validate_condition, lookup_field
from .rules import CheckResult, EligibilityOut, evaluate, quick_check
from .features import FEATURE_NAMES, extract_features
