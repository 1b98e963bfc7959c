"""Case storage and sample data loading."""

from .case_repository import CaseRepository, sort_cases
from .sample_cases import build_repository, load_sample_cases

__all__ = ['CaseRepository', 'sort_cases', 'build_repository', 'load_sample_cases']
