"""Sample case loading for local runs and demos."""

import logging
from pathlib import Path
from typing import List, Optional

import yaml

from ..models.case import WorkshopCase
from ..utils.config import Config
from ..utils.errors import CaseDataError, SampleDataError, handle_store_error
from .case_repository import CaseRepository

logger = logging.getLogger(__name__)


def load_sample_cases(path: str) -> List[WorkshopCase]:
    """
    Load cases from a YAML file.

    The file holds either a list of case mappings or a mapping with a
    ``cases`` list. Keys follow the dashboard's camelCase payload shape.

    Args:
        path: Path to the YAML file

    Returns:
        Parsed cases in file order

    Raises:
        SampleDataError: If the file is missing or not a list of cases
    """
    sample_path = Path(path)
    if not sample_path.exists():
        raise SampleDataError.not_found(str(sample_path))

    try:
        with open(sample_path, 'r') as f:
            data = yaml.safe_load(f) or []
    except yaml.YAMLError as e:
        raise SampleDataError.invalid(str(sample_path), e) from e

    if isinstance(data, dict):
        data = data.get("cases") or []
    if not isinstance(data, list):
        raise SampleDataError.invalid(str(sample_path), ValueError("expected a list of cases"))

    cases = []
    for index, raw in enumerate(data):
        try:
            cases.append(WorkshopCase.from_dict(raw))
        except CaseDataError as e:
            raise SampleDataError.invalid(str(sample_path), ValueError(f"case #{index}: {e}")) from e

    logger.info(f"Loaded {len(cases)} sample cases from {sample_path}")
    return cases


def build_repository(
    config: Optional[Config] = None,
    repository: Optional[CaseRepository] = None
) -> CaseRepository:
    """
    Create a repository, seeded with the sample cases when configured.

    A missing sample file is recoverable: it is logged and the repository
    starts empty. A malformed one is not and is re-raised.
    """
    config = config or Config.default()
    repository = repository or CaseRepository()

    if not config.storage.load_sample_cases:
        logger.info("Sample cases disabled, starting with an empty repository")
        return repository

    try:
        cases = load_sample_cases(config.storage.sample_cases_path)
    except SampleDataError as e:
        if not e.context.recoverable:
            handle_store_error(e, "sample case loading", logger)
        logger.warning(f"{e}")
        return repository

    for case in cases:
        repository.add(case)
    return repository
