"""Run the test suite and write JUnit, coverage and markdown reports."""

import argparse
import subprocess
import sys
from pathlib import Path
from xml.etree import ElementTree as ET

COVERAGE_TARGETS = ("app", "main")


def run_pytest(repo_root: Path, reports_dir: Path, keyword=None, fail_fast=False) -> int:
    reports_dir.mkdir(parents=True, exist_ok=True)

    cmd = [
        sys.executable,
        "-m",
        "pytest",
        "-q",
        "tests",
        f"--junitxml={reports_dir / 'junit.xml'}",
        "--asyncio-mode=auto",
        f"--cov-report=xml:{reports_dir / 'coverage.xml'}",
        f"--cov-report=html:{reports_dir / 'coverage-html'}",
        "--cov-report=term-missing",
    ]
    cmd.extend(f"--cov={target}" for target in COVERAGE_TARGETS)
    if fail_fast:
        cmd.append("--maxfail=1")
    if keyword:
        cmd.extend(["-k", keyword])
    return subprocess.run(cmd, cwd=repo_root).returncode


def parse_junit(junit_file: Path) -> dict:
    stats = {"tests": 0, "failures": 0, "errors": 0, "skipped": 0, "time": 0.0, "failed": []}
    if not junit_file.exists():
        return stats

    root = ET.parse(junit_file).getroot()
    suites = list(root) if root.tag == "testsuites" else [root]
    for suite in suites:
        for field in ("tests", "failures", "errors", "skipped"):
            stats[field] += int(suite.attrib.get(field, 0))
        stats["time"] += float(suite.attrib.get("time", 0.0))
        for case in suite.iter("testcase"):
            if case.find("failure") is not None or case.find("error") is not None:
                stats["failed"].append(f"{case.attrib.get('classname')}::{case.attrib.get('name')}")
    return stats


def parse_coverage(coverage_xml: Path) -> float:
    if not coverage_xml.exists():
        return 0.0
    line_rate = ET.parse(coverage_xml).getroot().attrib.get("line-rate")
    try:
        return round(float(line_rate) * 100.0, 2) if line_rate is not None else 0.0
    except ValueError:
        return 0.0


def write_markdown(report_md: Path, junit_stats: dict, coverage_pct: float) -> None:
    lines = [
        "# msp-core-gateway Test Report\n",
        f"- Total tests: {junit_stats['tests']}",
        f"- Failures: {junit_stats['failures']}",
        f"- Errors: {junit_stats['errors']}",
        f"- Skipped: {junit_stats['skipped']}",
        f"- Duration (s): {round(junit_stats['time'], 3)}",
        f"- Line coverage ({', '.join(COVERAGE_TARGETS)}): {coverage_pct}%",
    ]
    if junit_stats["failed"]:
        lines.append("\n## Failed tests\n")
        lines.extend(f"- `{name}`" for name in junit_stats["failed"])
    report_md.write_text("\n".join(lines) + "\n")


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--reports-dir", default="reports")
    parser.add_argument("-k", dest="keyword", help="Only run tests matching this expression")
    parser.add_argument("--fail-fast", action="store_true", help="Stop after the first failure")
    args = parser.parse_args()

    repo_root = Path(__file__).parent
    reports_dir = repo_root / args.reports_dir
    code = run_pytest(repo_root, reports_dir, keyword=args.keyword, fail_fast=args.fail_fast)

    junit_stats = parse_junit(reports_dir / "junit.xml")
    coverage_pct = parse_coverage(reports_dir / "coverage.xml")
    write_markdown(reports_dir / "test-report.md", junit_stats, coverage_pct)

    print(f"JUnit XML: {reports_dir / 'junit.xml'}")
    print(f"Coverage XML: {reports_dir / 'coverage.xml'}")
    print(f"Coverage HTML: {reports_dir / 'coverage-html'}/index.html")
    print(f"Markdown Report: {reports_dir / 'test-report.md'}")
    sys.exit(code)


if __name__ == "__main__":
    main()
