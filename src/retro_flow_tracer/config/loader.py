import os
import yaml
from typing import Dict, Any, List, Optional
from .models import ProjectConfig, SymbolHint

class ConfigLoader:
    def load_from_file(self, path: str) -> ProjectConfig:
        with open(path, 'r') as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid project config {path}: {e}") from e
        return self._parse_config(data, base_dir=os.path.dirname(os.path.abspath(path)))

    def _parse_config(self, data: Dict[str, Any], base_dir: Optional[str] = None) -> ProjectConfig:
        if not isinstance(data, dict):
            raise ValueError(f"Project config must be a mapping, got {type(data).__name__}")

        symbols = []
        for entry in self._as_list(data, "symbols"):
            if not isinstance(entry, dict):
                raise ValueError(f"Symbol entry must be a mapping: {entry}")
            if "name" not in entry or "address" not in entry:
                raise ValueError(f"Symbol entry needs 'name' and 'address': {entry}")
            symbols.append(SymbolHint(
                name=str(entry["name"]),
                address=self._parse_int(entry["address"])
            ))

        nonreturns = [self._parse_int(v) for v in self._as_list(data, "nonreturns")]

        return ProjectConfig(
            rom=self._resolve_path(data.get("rom"), base_dir),
            hints=self._resolve_path(data.get("hints"), base_dir),
            output=self._resolve_path(data.get("output"), base_dir),
            symbols=symbols,
            nonreturns=nonreturns
        )

    def _as_list(self, data: Dict[str, Any], key: str) -> List[Any]:
        value = data.get(key) or []
        if not isinstance(value, list):
            raise ValueError(f"'{key}' must be a list, got {type(value).__name__}")
        return value

    # 相対パスは設定ファイルのディレクトリ基準
    def _resolve_path(self, value: Optional[str], base_dir: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = str(value)
        if base_dir and not os.path.isabs(value):
            return os.path.join(base_dir, value)
        return value

    def _parse_int(self, value: Any) -> int:
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            if value.startswith("0x"):
                return int(value, 16)
            if value.startswith("$"):
                return int(value[1:], 16)
            return int(value)
        raise ValueError(f"Invalid integer format: {value}")
