"""gavlens - Maven dependency tree resolver and version safety advisor

    Returns:
        int: Exit code
"""
import json
import logging
import sys
from typing import Optional, Tuple

import requests

from args import parse_args
from cli_config import apply_cli_overrides, load_config
from common.cache import TTLCache
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from constants import Constants, ExitCodes
from errors import GavlensError, NotFoundError, RegistryUnavailableError
import exporters
from registry.maven.catalog import ArtifactCatalog
from registry.maven.client import MavenMetadataClient
from resolution.models import MultiModuleResult, NodeStatus, parse_coordinate
from resolution.resolver import DependencyGraphResolver
from resolution.service import ResolutionService
from security.osv import OsvClient
from versioning.intelligence import VersionIntelligenceEngine

logger = logging.getLogger(__name__)


def build_services(
    session: Optional[requests.Session] = None,
) -> Tuple[ResolutionService, VersionIntelligenceEngine, ArtifactCatalog]:
    """Wire the registry client, vulnerability feed and engines around one cache."""
    session = session or requests.Session()
    session.headers.setdefault("User-Agent", Constants.USER_AGENT)
    cache = TTLCache()
    client = MavenMetadataClient(session=session, cache=cache)
    resolver = DependencyGraphResolver(client, max_workers=Constants.RESOLVE_MAX_WORKERS)
    engine = VersionIntelligenceEngine(OsvClient(session=session), metadata_client=client, cache=cache)
    resolution = ResolutionService(resolver, cache=cache)
    return resolution, engine, ArtifactCatalog(client, resolution)


def _split_ga(text: str) -> Tuple[str, str]:
    parts = [p.strip() for p in (text or "").split(":")]
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Invalid coordinate '{text}'. Expected 'groupId:artifactId'.")
    return parts[0], parts[1]


def write_output(text: str, path: Optional[str]) -> None:
    """Write rendered output to ``path`` or stdout."""
    if not path:
        sys.stdout.write(text + "\n")
        return
    try:
        with open(path, "w", encoding="utf-8") as file:
            file.write(text + "\n")
        logging.info("Output has been successfully exported at: %s", path)
    except OSError as e:
        logging.error("Output file couldn't be written to disk: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def _render_tree_result(result, fmt: str) -> str:
    if isinstance(result, MultiModuleResult):
        if fmt == "text":
            sections = [exporters.render_tree(result.merged_tree)]
            for module in result.modules:
                sections.append(f"[{module.module_name}]\n{exporters.render_tree(module.tree)}")
            return "\n\n".join(sections)
        data = exporters.multi_module_to_dict(result)
        data["conflicts"] = exporters.conflict_summary(result.merged_tree)
        data["totalDependencies"] = exporters.count_dependencies(result.merged_tree)
        return json.dumps(data, ensure_ascii=False, indent=4)
    if fmt == "text":
        return exporters.render_tree(result)
    data = exporters.node_to_dict(result)
    data["conflicts"] = exporters.conflict_summary(result)
    data["totalDependencies"] = exporters.count_dependencies(result)
    return json.dumps(data, ensure_ascii=False, indent=4)


def _run_catalog_command(args, catalog: ArtifactCatalog, fmt: str) -> int:
    """Handle search, info and detail."""
    command = args.COMMAND
    if command == "search":
        result = catalog.search(args.query, args.PAGE, args.PAGE_SIZE)
        if fmt == "text":
            lines = [f"{result.total} results for '{result.query}' (page {result.page})"]
            lines.extend(
                f"  {hit.group}:{hit.artifact}:{hit.latest_version or '?'}  "
                f"{hit.packaging}  {hit.version_count} versions"
                for hit in result.hits
            )
            rendered = "\n".join(lines)
        else:
            rendered = json.dumps(exporters.search_result_to_dict(result), ensure_ascii=False, indent=4)
        write_output(rendered, args.OUTPUT)
        return ExitCodes.SUCCESS.value

    if command == "info":
        group, artifact = _split_ga(args.coordinate)
        info = catalog.info(group, artifact)
        if fmt == "text":
            lines = [
                f"{group}:{artifact}",
                f"latest: {info.latest_version}  recommended: {info.recommended_version}",
            ]
            if info.description:
                lines.append(info.description)
            for item in info.versions:
                marker = "*" if item.version == info.recommended_version else " "
                kind = "release" if item.is_release else "pre-release"
                lines.append(f"{marker} {item.version:<24} {kind}")
            rendered = "\n".join(lines)
        else:
            rendered = json.dumps(exporters.artifact_info_to_dict(info), ensure_ascii=False, indent=4)
        write_output(rendered, args.OUTPUT)
        return ExitCodes.SUCCESS.value

    coordinate = parse_coordinate(args.coordinate)
    detail = catalog.detail(coordinate.group, coordinate.artifact, coordinate.version, args.REPOSITORIES or None)
    if args.SNIPPET:
        rendered = detail.snippets[args.SNIPPET]
    elif fmt == "text":
        lines = [f"{coordinate} ({detail.packaging})"]
        lines.extend(value for value in (detail.name, detail.description, detail.url) if value)
        lines.extend(f"license: {lic.name}" for lic in detail.licenses)
        lines.append(f"dependencies: {detail.dependency_count}")
        lines.append(detail.snippets["maven"])
        rendered = "\n".join(lines)
    else:
        rendered = json.dumps(exporters.artifact_detail_to_dict(detail), ensure_ascii=False, indent=4)
    write_output(rendered, args.OUTPUT)
    return ExitCodes.SUCCESS.value


def run_command(
    args,
    resolution: ResolutionService,
    engine: VersionIntelligenceEngine,
    catalog: ArtifactCatalog,
) -> int:
    """Execute one parsed subcommand and write its output.

    Raises:
        GavlensError: propagated from the engines for ``main`` to map to an exit code.
        OSError: when the manifest file cannot be read.
    """
    fmt = getattr(args, "OUTPUT_FORMAT", None) or "json"
    command = args.COMMAND

    if command in ("resolve", "analyze"):
        if command == "resolve":
            coordinate = parse_coordinate(args.coordinate)
            result = resolution.resolve_coordinate(
                coordinate.group, coordinate.artifact, coordinate.version, args.REPOSITORIES or None,
                extension=coordinate.extension,
            )
        else:
            with open(args.manifest, "r", encoding="utf-8") as fh:
                text = fh.read()
            result = resolution.analyze_manifest(
                text, args.REPOSITORIES or None, detect_multi_module=args.MULTI_MODULE
            )
        write_output(_render_tree_result(result, fmt), args.OUTPUT)
        tree = result.merged_tree if isinstance(result, MultiModuleResult) else result
        if tree.status == NodeStatus.ERROR:
            return ExitCodes.INPUT_ERROR.value
        return ExitCodes.SUCCESS.value

    if command == "intelligence":
        group, artifact = _split_ga(args.coordinate)
        intel = engine.intelligence(group, artifact, Constants.INTELLIGENCE_DEFAULT_VERSIONS)
        if fmt == "text":
            lines = [f"{group}:{artifact}"]
            for item in intel.versions:
                marker = "*" if intel.recommended is item else " "
                lines.append(
                    f"{marker} {item.version:<24} {item.safety_indicator.value:<8} "
                    f"{item.stability_score:>5.1f}  {item.safety_label}"
                )
            rendered = "\n".join(lines)
        else:
            rendered = json.dumps(exporters.intelligence_to_dict(intel), ensure_ascii=False, indent=4)
        write_output(rendered, args.OUTPUT)
        return ExitCodes.SUCCESS.value

    if command in ("search", "info", "detail"):
        return _run_catalog_command(args, catalog, fmt)

    coordinate = parse_coordinate(args.coordinate)
    if command == "vulns":
        report = engine.vulnerability_report(coordinate.group, coordinate.artifact, coordinate.version)
        if fmt == "text":
            lines = [f"{coordinate}: {report.total} known vulnerabilities"]
            lines.extend(f"  {a.severity.value:<8} {a.id}  {a.summary or ''}" for a in report.advisories)
            lines.append(report.DISCLAIMER)
            rendered = "\n".join(lines)
        else:
            rendered = json.dumps(exporters.report_to_dict(report), ensure_ascii=False, indent=4)
        write_output(rendered, args.OUTPUT)
        if not report.available:
            return ExitCodes.CONNECTION_ERROR.value
        return ExitCodes.SUCCESS.value

    badge = engine.badge(coordinate.group, coordinate.artifact, coordinate.version)
    if fmt == "text":
        rendered = f"{coordinate}: {badge.indicator.value} ({badge.label})"
    else:
        rendered = json.dumps(exporters.badge_to_dict(badge), ensure_ascii=False, indent=4)
    write_output(rendered, args.OUTPUT)
    return ExitCodes.SUCCESS.value


def main(argv=None) -> int:
    """Main function of the program."""
    args = parse_args(argv)
    configure_logging(args.LOG_LEVEL)
    load_config(args)
    apply_cli_overrides(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.COMMAND)
        )

    resolution, engine, catalog = build_services()
    try:
        code = run_command(args, resolution, engine, catalog)
    except NotFoundError as e:
        logging.error("%s", e)
        return ExitCodes.NOT_FOUND.value
    except RegistryUnavailableError as e:
        logging.error("%s", e)
        return ExitCodes.CONNECTION_ERROR.value
    except (GavlensError, ValueError) as e:
        logging.error("%s", e)
        return ExitCodes.INPUT_ERROR.value
    except OSError as e:
        logging.error("File error: %s, aborting", e)
        return ExitCodes.FILE_ERROR.value

    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(event="function_exit", component="cli", action=args.COMMAND, outcome=str(code))
        )
    return code


if __name__ == "__main__":
    sys.exit(main())
