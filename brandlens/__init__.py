"""BrandLens - infer brand rules from designer documents."""

__version__ = "0.1.0"

from .exceptions import BrandLensError, DecodeError, InvalidContainer, NoAnalyzableFiles, UnsupportedDocument
from .models import AnalysisConfig, AnalysisResult, AnalysisStatus, BrandRule, DocumentObservation
from .pipeline import BrandAnalyzer, InputDocument
from .rule_repository import BrandRuleRepository, InMemoryRuleRepository, JsonFileRuleRepository
