import yaml
from pydantic import ValidationError
from typing import Dict, Any

from services.persona_engine.models import CatalogValidationError, ProfessionCatalog


def load_profession_catalog_data(data: Dict[str, Any]) -> ProfessionCatalog:
    """
    Validates the raw dictionary against the ProfessionCatalog model
    and performs the uniqueness checks the schema cannot express.
    """
    try:
        catalog = ProfessionCatalog.model_validate(data)
    except ValidationError as e:
        raise CatalogValidationError(f"Invalid profession catalog: {e}") from e

    major_names = set()
    for major in catalog.majors:
        if major.name in major_names:
            raise CatalogValidationError(f"Duplicate major found: {major.name}")
        major_names.add(major.name)

        subtype_names = set()
        for subtype in major.subtypes:
            if subtype.name in subtype_names:
                raise CatalogValidationError(f"Duplicate subtype '{subtype.name}' in major '{major.name}'")
            subtype_names.add(subtype.name)

    return catalog


def load_profession_catalog_from_file(file_path: str) -> ProfessionCatalog:
    """
    Loads a profession catalog from a YAML file, validates it,
    and returns a ProfessionCatalog object.
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise CatalogValidationError(f"File not found: {file_path}")
    except yaml.YAMLError as e:
        raise CatalogValidationError(f"Error parsing YAML file {file_path}: {e}")

    if data is None:
        raise CatalogValidationError(f"YAML file is empty or invalid: {file_path}")

    return load_profession_catalog_data(data)
