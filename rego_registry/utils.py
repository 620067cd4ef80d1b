import datetime
import io
import json
from functools import partial
from typing import Any, Hashable, Type, TypeVar

import pandas as pd
from pydantic import BaseModel
from sqlmodel import Field, Session, SQLModel

from rego_registry.core.exceptions import NotFoundError, ValidationError

T = TypeVar("T", bound="ActiveRecord")

utc_datetime_now = partial(datetime.datetime.now, datetime.timezone.utc)


class ActiveRecord(SQLModel):
    created_at: datetime.datetime = Field(
        default_factory=utc_datetime_now, nullable=False
    )

    @classmethod
    def by_id(
        cls: Type[T],
        id_: int,
        session: Session,
        for_update: bool = False,
    ) -> T:
        """Fetch a row by primary key, optionally holding a row lock until commit."""
        obj = session.get(cls, id_, with_for_update=True if for_update else None)
        if obj is None:
            raise NotFoundError(f"{cls.__name__} with id {id_} not found")
        return obj

    @classmethod
    def create(
        cls: Type[T],
        source: list[dict[Hashable, Any]]
        | dict[Hashable, Any]
        | dict[str, Any]
        | BaseModel,
        write_session: Session,
    ) -> list[T]:
        """Validate and stage new rows; ids are populated by the flush.

        Nothing is committed here, the caller owns the transaction.
        """
        if isinstance(source, BaseModel):
            obj = [cls.model_validate(source.model_dump())]
        elif isinstance(source, dict):
            obj = [cls.model_validate(source)]
        elif isinstance(source, list):
            obj = [cls.model_validate(elem) for elem in source]
        else:
            raise ValueError(f"The input type {type(source)} can not be processed")

        write_session.add_all(obj)
        write_session.flush()
        for entity in obj:
            write_session.refresh(entity)

        return obj

    def update(
        self: T,
        update_entity: BaseModel | dict[str, Any],
        write_session: Session,
    ) -> T:
        if isinstance(update_entity, BaseModel):
            update_data = update_entity.model_dump(exclude_unset=True)
        else:
            update_data = update_entity

        self.sqlmodel_update(update_data)
        write_session.add(self)
        write_session.flush()

        return self


def parse_import_file(filename: str | None, content: str) -> pd.DataFrame:
    """Parse the import file content into a pandas DataFrame.

    Supports both CSV and JSON formats.

    Args:
        filename (str | None): The original filename (used to determine file type)
        content (str): The file content as a string

    Returns:
        pd.DataFrame: Parsed data as a pandas DataFrame

    Raises:
        ValidationError: If the file format is not supported or parsing fails
    """
    file_type = None
    if filename:
        filename_lower = filename.lower()
        if filename_lower.endswith(".csv"):
            file_type = "csv"
        elif filename_lower.endswith(".json"):
            file_type = "json"

    # If we can't determine from filename, try to parse as JSON first, then CSV
    if file_type is None:
        try:
            json.loads(content)
            file_type = "json"
        except json.JSONDecodeError:
            file_type = "csv"

    try:
        if file_type == "csv":
            return pd.read_csv(io.StringIO(content), dtype=str)

        json_data = json.loads(content)

        # Array of objects: [{"col1": "val1", "col2": "val2"}, ...]
        if isinstance(json_data, list):
            if not json_data:
                raise ValidationError("JSON file contains an empty array")
            if not all(isinstance(item, dict) for item in json_data):
                raise ValidationError("JSON array must contain only objects")
            return pd.DataFrame(json_data, dtype=str)

        # Object with arrays: {"col1": ["val1", "val2"], "col2": ["val3", "val4"]}
        if isinstance(json_data, dict):
            return pd.DataFrame(json_data, dtype=str)

        raise ValidationError(
            "JSON format not supported. Use array of objects or object with arrays format."
        )

    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON format: {str(e)}")
    except pd.errors.EmptyDataError:
        raise ValidationError("The uploaded file is empty")
    except pd.errors.ParserError as e:
        raise ValidationError(f"Error parsing CSV file: {str(e)}")
