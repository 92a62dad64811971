# src/toons_library/credential_store.py

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .error_handler import NotFoundError, SerializationError
from .utils.resilient_io import safe_write_json

lib_logger = logging.getLogger("toons_library")


@dataclass
class CredentialRecord:
    """
    One authenticated character.

    Serialized with the keys "name", "id", "refresh_token" and "scopes" so
    that files written by earlier versions of the tool keep loading.
    """

    name: str
    character_id: int
    refresh_token: str = field(repr=False)
    scopes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "id": self.character_id,
            "refresh_token": self.refresh_token,
            "scopes": self.scopes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CredentialRecord":
        if not isinstance(data, dict):
            raise ValueError(f"expected an object, got {type(data).__name__}")
        missing = [k for k in ("name", "id", "refresh_token") if k not in data]
        if missing:
            raise ValueError(f"missing field(s): {', '.join(missing)}")
        character_id = data["id"]
        if isinstance(character_id, bool) or not isinstance(character_id, int):
            raise ValueError(f"'id' must be an integer, got {character_id!r}")
        if not isinstance(data["name"], str) or not isinstance(
            data["refresh_token"], str
        ):
            raise ValueError("'name' and 'refresh_token' must be strings")
        return cls(
            name=data["name"],
            character_id=character_id,
            refresh_token=data["refresh_token"],
            scopes=str(data.get("scopes", "")),
        )


class CredentialStore:
    """
    Mapping of character name -> CredentialRecord backed by one JSON file.

    The file is read once and rewritten wholesale on save(); there is no
    locking, so two concurrent invocations race on it.
    """

    def __init__(
        self,
        path: Union[Path, str],
        records: Optional[Dict[str, CredentialRecord]] = None,
    ):
        self.path = Path(path)
        self._records: Dict[str, CredentialRecord] = dict(records or {})

    @classmethod
    def load(cls, path: Union[Path, str]) -> "CredentialStore":
        """
        Read the credential file. A missing file is an empty store.

        Raises:
            SerializationError: if the file exists but is not a valid store
        """
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except FileNotFoundError:
            lib_logger.debug(f"No credential file at '{path}', starting empty.")
            return cls(path)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise SerializationError(path, str(e)) from e

        if not isinstance(raw, dict):
            raise SerializationError(path, "top level must be a JSON object")

        records = {}
        for key, value in raw.items():
            try:
                records[key] = CredentialRecord.from_dict(value)
            except ValueError as e:
                raise SerializationError(path, f"entry '{key}': {e}") from e

        lib_logger.debug(f"Loaded {len(records)} credential(s) from '{path}'.")
        return cls(path, records)

    def save(self) -> None:
        """
        Rewrite the whole file.

        Raises:
            OSError: if the file could not be written
        """
        data = {name: record.to_dict() for name, record in self._records.items()}
        if not safe_write_json(self.path, data, lib_logger, secure_permissions=True):
            raise OSError(f"Failed to write credential file '{self.path}'")
        lib_logger.debug(f"Saved {len(data)} credential(s) to '{self.path}'.")

    def upsert(self, record: CredentialRecord) -> bool:
        """Insert or replace the record for record.name. Returns True on update."""
        is_update = record.name in self._records
        self._records[record.name] = record
        return is_update

    def get(self, name: str) -> Optional[CredentialRecord]:
        return self._records.get(name)

    def find_by_name(self, name: str) -> Optional[CredentialRecord]:
        """
        Exact match first, then the alphabetically first name starting with
        `name`. Returns None if neither matches.
        """
        record = self._records.get(name)
        if record is not None:
            return record
        for candidate in sorted(self._records):
            if candidate.startswith(name):
                return self._records[candidate]
        return None

    def require(self, name: str) -> CredentialRecord:
        """Like find_by_name() but raises NotFoundError on a miss."""
        record = self.find_by_name(name)
        if record is None:
            raise NotFoundError(name)
        return record

    def names(self) -> List[str]:
        return sorted(self._records)

    def records(self) -> List[CredentialRecord]:
        return [self._records[name] for name in self.names()]

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, name: object) -> bool:
        return name in self._records
