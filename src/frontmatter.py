"""
Front matter support for OneiroMetrics

Reads the '---' delimited property block at the top of a journal
document, extracts configured metrics from it, and writes metric
values back into it.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import yaml

from metrics_parser import coerce_value
from models import (
    ExtractedMetrics,
    MetricConfig,
    MetricSource,
    MetricValue,
    ValueKind,
    value_kind_of,
)
from logging_setup import LogCategory, get_logger


FRONTMATTER_PATTERN = re.compile(r'^---[ \t]*\r?\n(.*?)(?:\r?\n)?---[ \t]*(?:\r?\n|$)', re.DOTALL)


@dataclass
class FrontmatterParseResult:
    data: Dict[str, Any] = field(default_factory=dict)
    success: bool = True
    errors: List[str] = field(default_factory=list)
    raw: str = ""
    body: str = ""


@dataclass
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


class FrontmatterParser:
    """Parse and rewrite the front matter block of a document"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or get_logger(__name__)

    def parse(self, content: str) -> FrontmatterParseResult:
        """Parse front matter; malformed blocks are reported, not raised"""
        match = FRONTMATTER_PATTERN.match(content)
        if not match:
            return FrontmatterParseResult(body=content)

        raw = match.group(1)
        body = content[match.end():]

        try:
            data = yaml.safe_load(raw) if raw.strip() else {}
        except yaml.YAMLError as e:
            self.logger.warning(f"{LogCategory.FRONTMATTER} Invalid front matter: {e}")
            return FrontmatterParseResult(success=False, errors=[str(e)], raw=raw, body=body)

        if data is None:
            data = {}
        if not isinstance(data, dict):
            return FrontmatterParseResult(
                success=False,
                errors=["Front matter is not a key/value mapping"],
                raw=raw,
                body=body,
            )

        return FrontmatterParseResult(data=self._normalize(data), raw=raw, body=body)

    def update(self, content: str, data: Dict[str, Any]) -> str:
        """Replace the front matter of content with data, adding a block if missing"""
        dumped = yaml.safe_dump(
            data,
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=None,
        )
        block = f"---\n{dumped}---\n"

        match = FRONTMATTER_PATTERN.match(content)
        if match:
            return block + content[match.end():]
        return f"{block}\n{content}"

    def validate(self, data: Dict[str, Any], configs: List[MetricConfig]) -> ValidationResult:
        """Check configured properties for shape and range problems"""
        errors = []
        warnings = []

        for config in configs:
            if not config.enabled or not config.frontmatter_property:
                continue

            value = data.get(config.frontmatter_property)
            if value is None:
                continue

            prop = config.frontmatter_property
            if config.value_kind == ValueKind.LIST and not isinstance(value, list):
                warnings.append(f"Property '{prop}' should be a list")
            if config.value_kind != ValueKind.LIST and isinstance(value, list):
                warnings.append(f"Property '{prop}' should be a single value, not a list")

            if config.value_kind == ValueKind.NUMBER and not isinstance(value, list):
                number = coerce_value(str(value))
                if value_kind_of(number) != ValueKind.NUMBER:
                    errors.append(f"{config.name} must be a number")
                elif config.min_value is not None and config.max_value is not None \
                        and config.max_value > config.min_value \
                        and not config.min_value <= number <= config.max_value:
                    errors.append(
                        f"{config.name} must be between {config.min_value} and {config.max_value}"
                    )

        return ValidationResult(valid=not errors, errors=errors, warnings=warnings)

    def _normalize(self, data: Dict[str, Any]) -> Dict[str, Any]:
        normalized = {}
        for key, value in data.items():
            if isinstance(value, list):
                value = [
                    item[2:] if isinstance(item, str) and item.startswith('- ') else item
                    for item in value
                ]
            normalized[str(key)] = value
        return normalized


class FrontmatterMetricSource:
    """
    Metrics stored as front matter properties.

    Only enabled metrics that name a frontmatter_property take part.
    With auto_detect on, comma separated strings become lists and YAML
    lists are kept as lists for text metrics.
    """

    def __init__(
        self,
        metric_configs: List[MetricConfig],
        auto_detect: bool = True,
        parser: Optional[FrontmatterParser] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.configs = [c for c in metric_configs if c.enabled and c.frontmatter_property]
        self.auto_detect = auto_detect
        self.logger = logger or get_logger(__name__)
        self.parser = parser or FrontmatterParser(self.logger)

    def extract(self, properties: Dict[str, Any]) -> ExtractedMetrics:
        """Extract configured metrics from a property map"""
        values: Dict[str, MetricValue] = {}

        for config in self.configs:
            raw = properties.get(config.frontmatter_property)
            if raw is None:
                continue

            value = self.convert_value(raw, config)
            if value is not None:
                values[config.name] = value

        return ExtractedMetrics(
            values=values,
            source=MetricSource.FRONTMATTER,
            extracted_at=datetime.now().isoformat(),
        )

    def extract_from_text(self, content: str) -> ExtractedMetrics:
        return self.extract(self.parser.parse(content).data)

    def convert_value(self, value: Any, config: MetricConfig) -> Optional[MetricValue]:
        """Convert a property value to the shape of the metric"""
        if self.auto_detect and isinstance(value, str) and ',' in value:
            value = [item.strip() for item in value.split(',') if item.strip()]

        if isinstance(value, (list, tuple)):
            items = [item for item in value if item is not None]
            if config.value_kind == ValueKind.LIST:
                return [str(item) for item in items]
            if config.value_kind == ValueKind.STRING and self.auto_detect:
                return [str(item) for item in items]
            if not items:
                return None
            value = items[0]

        if config.value_kind == ValueKind.LIST:
            return [str(value)]

        if config.value_kind == ValueKind.NUMBER:
            if isinstance(value, bool):
                return str(value).lower()
            if isinstance(value, (int, float)):
                return value
            return coerce_value(str(value))

        return str(value)

    def format_value(self, value: MetricValue, config: MetricConfig) -> Any:
        """Inverse of convert_value, for writing a metric back"""
        if config.value_kind == ValueKind.LIST:
            return list(value) if isinstance(value, (list, tuple)) else [value]

        if isinstance(value, (list, tuple)):
            if config.value_kind == ValueKind.STRING and self.auto_detect:
                return ', '.join(str(item) for item in value)
            return value[0] if value else None

        return value

    def to_properties(self, metrics: ExtractedMetrics, properties: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Property map with the configured metrics written into it"""
        updated = dict(properties or {})

        for config in self.configs:
            value = metrics.get(config.name)
            if value is None:
                continue
            formatted = self.format_value(value, config)
            if formatted is not None:
                updated[config.frontmatter_property] = formatted

        return updated

    async def update_document(self, store, path: str, metrics: ExtractedMetrics) -> bool:
        """Write metrics into a document's front matter through the store"""
        content = await store.read(path)
        parsed = self.parser.parse(content)
        if not parsed.success:
            self.logger.warning(
                f"{LogCategory.FRONTMATTER} Not updating {path}: front matter could not be parsed"
            )
            return False

        updated = self.to_properties(metrics, parsed.data)
        written = await store.write(path, self.parser.update(content, updated))
        self.logger.debug(f"{LogCategory.FRONTMATTER} Updated front matter metrics in {path}")
        return written
