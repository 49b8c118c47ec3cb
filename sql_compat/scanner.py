"""
Mapper Scanner

Finds mapper XML files, resolves every mapped statement into concrete SQL
and parameter bindings, and returns a deduplicated, order-stable list of
StatementRecord.

There is no caller-supplied parameter object at scan time, so the scanner
builds a synthetic one from the property paths used in conditional tests.
Every lookup on it yields a non-null sample value, which makes conditional
fragments render as if their conditions held. The resolved SQL may therefore
combine fragments that no single real invocation would produce.
"""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple
import logging
import re

from lxml import etree

from .discovery import DEFAULT_INCLUDE, find_files
from .errors import MapperScanError, TemplateError
from .statements import ParameterSpec, StatementKind, StatementRecord, normalize_whitespace
from .template import SELECT_KEY_SUFFIX, MapperDocument


logger = logging.getLogger(__name__)

CONDITION_TOKEN = re.compile(r"([A-Za-z_][\w.]*)")
# @class@method static references are not property paths
STATIC_REFERENCE = re.compile(r"@[\w$.]*@[\w$]*")
CONDITION_KEYWORDS = {"null", "and", "or", "not", "true", "false", "empty"}
CONDITION_TAGS = {"if", "when"}
UNNAMED_ID = "<unnamed>"


class SampleParamMap:
    """
    Parameter object whose every lookup succeeds.

    A missing (or null) key resolves to SAMPLE_VALUE, which is stored on first
    lookup. The map never reports itself empty and its size is at least 1,
    so size()/isEmpty() checks in test expressions pass as well.
    """

    SAMPLE_VALUE = 1

    def __init__(self):
        self._values: Dict[str, Any] = {}

    def get(self, key: Any) -> Any:
        key = str(key)
        value = self._values.get(key)
        if value is None:
            value = self.SAMPLE_VALUE
            self._values[key] = value
        return value

    def put(self, key: Any, value: Any):
        self._values[str(key)] = value

    def __contains__(self, key: Any) -> bool:
        return str(key) in self._values

    def __len__(self) -> int:
        return max(1, len(self._values))

    def __bool__(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"SampleParamMap({self._values!r})"


def build_sample_params(names: Iterable[str]) -> SampleParamMap:
    """
    Nest dotted property paths into SampleParamMaps.

    ``customer.address.city`` becomes customer -> address -> city, with the
    leaf set to the sample value.
    """
    root = SampleParamMap()
    for name in names:
        if not name or not name.strip():
            continue
        parts = name.split(".")
        current = root
        for part in parts[:-1]:
            nested = current.get(part)
            if not isinstance(nested, SampleParamMap):
                nested = SampleParamMap()
                current.put(part, nested)
            current = nested
        if parts[-1] not in current:
            current.put(parts[-1], SampleParamMap.SAMPLE_VALUE)
    return root


def collect_test_tokens(element, collector: Set[str]):
    """Collect property paths referenced by if/when tests under ``element``."""
    if not isinstance(element.tag, str):
        return
    if element.tag.lower() in CONDITION_TAGS:
        test = element.get("test")
        if test and test.strip():
            for token in CONDITION_TOKEN.findall(STATIC_REFERENCE.sub(" ", test)):
                if token.lower() not in CONDITION_KEYWORDS:
                    collector.add(token)
    for child in element:
        collect_test_tokens(child, collector)


def collect_condition_params(root, namespace: str) -> Dict[str, Set[str]]:
    """
    Map each top-level statement's full id to the property paths its
    conditional tests reference.
    """
    hints: Dict[str, Set[str]] = {}
    for element in root:
        if not isinstance(element.tag, str) or StatementKind.from_tag(element.tag) is StatementKind.UNKNOWN:
            continue
        statement_id = element.get("id")
        if not statement_id or not statement_id.strip():
            statement_id = UNNAMED_ID
        full_id = statement_id if not namespace.strip() else f"{namespace}.{statement_id}"
        params: Set[str] = set()
        collect_test_tokens(element, params)
        hints[full_id] = params
    return hints


def split_id(full_id: str) -> Tuple[str, str]:
    """Split ``ns.sub.id`` into (``ns.sub``, ``id``)."""
    namespace, dot, local_id = full_id.rpartition(".")
    if not dot or not namespace:
        return "", full_id
    return namespace, local_id


def _xml_parser() -> etree.XMLParser:
    # DOCTYPE declarations are common in mapper files; never fetch the DTD.
    return etree.XMLParser(
        load_dtd=False,
        no_network=True,
        resolve_entities=False,
        remove_comments=True,
        remove_pis=True,
    )


class MapperScanner:
    """
    Scan mapper directories for mapped statements.

    Missing directories are logged and recorded in ``missing_directories``;
    a file that fails to parse or resolve raises MapperScanError and stops
    the scan.

    Example:
        scanner = MapperScanner(["src/main/resources"], ["**/*Mapper.xml"])
        statements = scanner.scan()
    """

    def __init__(
        self,
        directories: Optional[Iterable[str]] = None,
        includes: Optional[Iterable[str]] = None,
        excludes: Optional[Iterable[str]] = None,
    ):
        self.directories = [str(d) for d in directories or []]
        self.includes = list(includes or [])
        self.excludes = list(excludes or [])
        self.missing_directories: List[Path] = []
        self.duplicates: List[str] = []

    def scan(self) -> List[StatementRecord]:
        unique: Dict[Tuple, StatementRecord] = {}
        defined: Dict[Tuple[str, StatementKind], StatementRecord] = {}

        for directory in self.directories:
            base = Path(directory)
            if not base.is_dir():
                logger.warning(f"Mapper directory does not exist: {base}")
                self.missing_directories.append(base)
                continue

            logger.info(f"Scanning mapper directory: {base.absolute()}")
            if self.includes:
                logger.info(f"Include patterns: {self.includes}")
            else:
                logger.info(f"Include patterns: <none provided> (defaulting to {DEFAULT_INCLUDE})")
            logger.info(f"Exclude patterns: {self.excludes}")

            included = find_files(base, self.includes, self.excludes)
            logger.info(f"Included files ({len(included)}): {', '.join(included)}")

            for relative in included:
                path = base / relative
                logger.info(f" - found mapper: {path.absolute().as_uri()} (name: {path.name})")
                for statement in self.parse_file(path):
                    self._collect(statement, unique, defined)

        return list(unique.values())

    def _collect(self, statement: StatementRecord, unique: Dict, defined: Dict):
        key = statement.dedupe_key
        label = f"{statement.full_id}|{statement.kind.value}|{key[2]}"
        if key in unique:
            logger.warning(f"Skipping duplicate mapped statement: {label}")
            self.duplicates.append(label)
            return

        first = defined.get((statement.full_id, statement.kind))
        if first is not None:
            logger.warning(
                f"Skipping duplicate mapped statement: {label} "
                f"(already defined in {first.source_file})"
            )
            self.duplicates.append(label)
            return

        unique[key] = statement
        defined[(statement.full_id, statement.kind)] = statement

    def parse_file(self, path: Path) -> List[StatementRecord]:
        """
        Resolve every mapped statement in one mapper file.

        Raises:
            MapperScanError: The file is unreadable, malformed, or a
                statement template cannot be resolved
        """
        try:
            root = etree.parse(str(path), _xml_parser()).getroot()
            if root.tag != "mapper":
                raise TemplateError(f"Root element must be <mapper>, found <{root.tag}>")
            namespace = (root.get("namespace") or "").strip()
            hints = collect_condition_params(root, namespace)
            document = MapperDocument.parse(root, str(path))

            collected = []
            for mapped in document.statements:
                if SELECT_KEY_SUFFIX in mapped.id:
                    continue
                kind = StatementKind.from_tag(mapped.command)
                if kind is StatementKind.UNKNOWN:
                    logger.debug(f"Skipping unclassifiable statement {mapped.full_id}")
                    continue

                sample = build_sample_params(hints.get(mapped.full_id, ()))
                bound = document.bind(mapped, sample)
                embedded_namespace, local_id = split_id(mapped.full_id)
                collected.append(StatementRecord(
                    local_id=local_id,
                    namespace=embedded_namespace or namespace,
                    kind=kind,
                    source_file=path,
                    resolved_sql=normalize_whitespace(bound.sql),
                    parameters=tuple(ParameterSpec.from_binding(b) for b in bound.bindings),
                ))
            return collected

        except Exception as e:
            raise MapperScanError(path, str(e)) from e
