"""
OpenMW Config Codec for OMWModManager
Parses openmw.cfg into an order-preserving key/values model and writes it back.
Unrecognized lines (comments, section headers, blanks) are kept verbatim.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Union

# Module logger
log = logging.getLogger("omwmodmanager.omw_config")

# Keys the mod manager reads and writes
DATA_KEY = "data"
CONTENT_KEY = "content"
FALLBACK_ARCHIVE_KEY = "fallback-archive"

LINE_BREAK_PATTERN = re.compile(r"\r?\n")
QUOTE = '"'

# Undecodable bytes (e.g. a Latin-1 path) round-trip as lone surrogates
CONFIG_ENCODING_ERRORS = "surrogateescape"


@dataclass(frozen=True)
class TemplateKey:
    """Marks the position of the first occurrence of a key in the template."""
    key: str


TemplateLine = Union[str, TemplateKey]


def _strip_quotes(value: str) -> tuple[str, bool]:
    """Remove a pair of surrounding quotes, report whether there was one."""
    if len(value) >= 2 and value.startswith(QUOTE) and value.endswith(QUOTE):
        return value[1:-1], True
    return value, False


@dataclass
class OpenMWConfig:
    """
    Parsed openmw.cfg.

    values maps each key to its values in insertion order (no duplicates).
    template holds the original lines with the first occurrence of every
    key replaced by a TemplateKey marker.
    value_quoting records whether each parsed (key, value) was written
    quoted; values added later follow quoted_keys, the quoting of the
    key's first occurrence.
    """
    values: dict[str, list[str]] = field(default_factory=dict)
    template: list[TemplateLine] = field(default_factory=list)
    quoted_keys: set[str] = field(default_factory=set)
    value_quoting: dict[tuple[str, str], bool] = field(default_factory=dict)

    @classmethod
    def parse(cls, raw_text: str, strip_quotes: bool = True) -> 'OpenMWConfig':
        """
        Parse raw config text.
        Lines without '=' (or starting with '=') pass through untouched.
        """
        cfg = cls()
        for line in LINE_BREAK_PATTERN.split(raw_text):
            eq_idx = line.find("=")
            if eq_idx < 1:
                cfg.template.append(line)
                continue

            key = line[:eq_idx]
            value = line[eq_idx + 1:]
            quoted = False
            if strip_quotes:
                value, quoted = _strip_quotes(value)

            if key not in cfg.values:
                cfg.template.append(TemplateKey(key))
                cfg.values[key] = []
                if quoted:
                    cfg.quoted_keys.add(key)

            if value not in cfg.values[key]:
                cfg.values[key].append(value)
                cfg.value_quoting[(key, value)] = quoted

        log.debug(f"Parsed config: {len(cfg.values)} keys, {len(cfg.template)} template lines")
        return cfg

    def serialize(self, newline: str = "\r\n") -> str:
        """Expand the template back into config text."""
        lines = []
        for item in self.template:
            if not isinstance(item, TemplateKey):
                lines.append(item)
                continue

            key = item.key
            default_quoted = key in self.quoted_keys
            for value in self.values.get(key, []):
                if self.value_quoting.get((key, value), default_quoted):
                    lines.append(f'{key}="{value}"')
                else:
                    lines.append(f"{key}={value}")

        return newline.join(lines)

    def get_values(self, key: str) -> list[str]:
        """Return a copy of the values for a key (empty if absent)."""
        return list(self.values.get(key, []))

    def set_values(self, key: str, updater: Callable[[list[str]], Iterable[str]]) -> 'OpenMWConfig':
        """
        Replace the values of a key with updater(current_values).

        A missing key is created and its placeholder appended to the end
        of the template. Duplicates returned by the updater collapse,
        keeping the first position.
        """
        if key not in self.values:
            self.values[key] = []
            self.template.append(TemplateKey(key))

        updated = updater(list(self.values[key]))
        self.values[key] = list(dict.fromkeys(updated))
        return self

    def copy(self) -> 'OpenMWConfig':
        """Return an independent copy of this config."""
        return OpenMWConfig(
            values={key: list(values) for key, values in self.values.items()},
            template=list(self.template),
            quoted_keys=set(self.quoted_keys),
            value_quoting=dict(self.value_quoting),
        )


def read_openmw_config(config_path: Path) -> OpenMWConfig:
    """
    Read and parse an openmw.cfg file.
    Bytes that are not valid UTF-8 are carried through unchanged.
    """
    with open(config_path, 'r', encoding='utf-8', errors=CONFIG_ENCODING_ERRORS, newline='') as f:
        raw = f.read()
    return OpenMWConfig.parse(raw)


def write_openmw_config(config_path: Path, cfg: OpenMWConfig) -> None:
    """Serialize and write an openmw.cfg file (full overwrite)."""
    with open(config_path, 'w', encoding='utf-8', errors=CONFIG_ENCODING_ERRORS, newline='') as f:
        f.write(cfg.serialize())
    log.info(f"OpenMW config written: {config_path}")
