"""Argument parsing functionality for gavlens."""

import argparse
from constants import Constants


def _add_common(parser):
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Path to output file (default: stdout)",
                        action="store",
                        type=str)
    parser.add_argument("-f", "--format",
                        dest="OUTPUT_FORMAT",
                        help="Output format (json or text, default: json). Text is a tree view for resolve and analyze.",
                        action="store",
                        type=str.lower,
                        choices=['json', 'text'])


def _add_repositories(parser):
    parser.add_argument("-r", "--repo",
                        dest="REPOSITORIES",
                        help=(f"Additional https repository URL, up to "
                              f"{Constants.MAX_CUSTOM_REPOSITORIES} (can be used multiple times)"),
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("-w", "--workers",
                        dest="WORKERS",
                        help="Concurrent metadata fetches per resolution level",
                        action="store",
                        type=int)


def build_parser():
    """Builds the argument parser with one subcommand per operation."""
    parser = argparse.ArgumentParser(
        prog="gavlens",
        description="gavlens - Maven dependency tree resolver and version safety advisor",
        add_help=True,
    )
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level (default: $GAVLENS_LOG_LEVEL or WARNING)",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default=None)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to YAML configuration file",
                        action="store",
                        type=str)

    sub = parser.add_subparsers(dest="COMMAND", metavar="COMMAND")
    sub.required = True

    resolve = sub.add_parser("resolve", help="Resolve the dependency tree of group:artifact:version")
    resolve.add_argument("coordinate", help="groupId:artifactId:version")
    _add_repositories(resolve)
    _add_common(resolve)

    analyze = sub.add_parser("analyze", help="Resolve the dependencies declared in a pom.xml")
    analyze.add_argument("manifest", help="Path to the pom.xml to analyze")
    analyze.add_argument("--multi-module",
                         dest="MULTI_MODULE",
                         help="Aggregate per-module trees when <modules> is present (default)",
                         action="store_true",
                         default=True)
    analyze.add_argument("--no-multi-module",
                         dest="MULTI_MODULE",
                         help="Resolve as a single project even when <modules> is present",
                         action="store_false")
    _add_repositories(analyze)
    _add_common(analyze)

    intel = sub.add_parser("intelligence", help="Assess recent versions of group:artifact")
    intel.add_argument("coordinate", help="groupId:artifactId")
    intel.add_argument("-n", "--versions",
                       dest="VERSIONS",
                       help=f"Number of newest versions to assess (default: {Constants.INTELLIGENCE_DEFAULT_VERSIONS})",
                       action="store",
                       type=int)
    _add_common(intel)

    vulns = sub.add_parser("vulns", help="List known vulnerabilities of group:artifact:version")
    vulns.add_argument("coordinate", help="groupId:artifactId:version")
    _add_common(vulns)

    badge = sub.add_parser("badge", help="Vulnerability-only safety badge for group:artifact:version")
    badge.add_argument("coordinate", help="groupId:artifactId:version")
    _add_common(badge)

    search = sub.add_parser("search", help="Search Maven Central for artifacts")
    search.add_argument("query", help="Free-text query, e.g. guava or g:com.google.guava")
    search.add_argument("--page",
                        dest="PAGE",
                        help="Zero-based result page (default: 0)",
                        action="store",
                        type=int,
                        default=0)
    search.add_argument("--size",
                        dest="PAGE_SIZE",
                        help=(f"Results per page (default: {Constants.SEARCH_DEFAULT_PAGE_SIZE}, "
                              f"max: {Constants.SEARCH_MAX_PAGE_SIZE})"),
                        action="store",
                        type=int)
    _add_common(search)

    info = sub.add_parser("info", help="Show all versions and details of group:artifact")
    info.add_argument("coordinate", help="groupId:artifactId")
    _add_common(info)

    detail = sub.add_parser("detail", help="Show details and dependency snippets of group:artifact:version")
    detail.add_argument("coordinate", help="groupId:artifactId:version")
    detail.add_argument("-s", "--snippet",
                        dest="SNIPPET",
                        help="Print only the declaration for this build tool",
                        action="store",
                        type=str.lower,
                        choices=list(Constants.SNIPPET_FORMATS))
    _add_repositories(detail)
    _add_common(detail)

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
