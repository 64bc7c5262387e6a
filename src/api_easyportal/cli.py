"""CLI entry point for api-easyportal."""

import json
import logging
from pathlib import Path

import click

from api_easyportal.config import RequestConfig, load_config, parse_header
from api_easyportal.csv_codec import export_results, parse_csv
from api_easyportal.exceptions import EasyPortalError
from api_easyportal.form import form_fields, missing_required
from api_easyportal.parser.base import EndpointDescriptor
from api_easyportal.parser.swagger import build_catalog, filter_endpoints, find_endpoint, load_spec_file
from api_easyportal.runner.batch import BatchRunner
from api_easyportal.runner.executor import RequestExecutor

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _load_catalog(spec_path: Path) -> list[EndpointDescriptor]:
    try:
        return build_catalog(load_spec_file(spec_path))
    except EasyPortalError as e:
        raise click.ClickException(str(e)) from e


def _select_endpoint(spec_path: Path, key: str) -> EndpointDescriptor:
    try:
        return find_endpoint(_load_catalog(spec_path), key)
    except EasyPortalError as e:
        raise click.ClickException(str(e)) from e


def _parse_values(pairs: tuple[str, ...]) -> dict[str, str]:
    values = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"'{pair}' is not name=value", param_hint="--data")
        values[name] = value
    return values


def _format_body(body) -> str:
    if isinstance(body, str):
        return body
    return json.dumps(body, indent=2, ensure_ascii=False)


def request_options(f):
    """Options shared by the commands that send requests."""
    options = [
        click.option("--base-url", default=None, help="API base URL (env: API_BASE_URL)."),
        click.option("--token", default=None, help="Bearer token (env: API_TOKEN)."),
        click.option("-H", "--header", "headers", multiple=True, help="Global header 'Key: Value' (repeatable)."),
        click.option("--timeout", default=None, type=float, help="Per-request timeout in seconds."),
        click.option("--config", "config_path", default=None, type=click.Path(exists=True, path_type=Path),
                     help="YAML config file with base_url, token, headers, timeout."),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def _build_config(base_url, token, headers, timeout, config_path) -> RequestConfig:
    try:
        config = load_config(config_path)
        extra = tuple(parse_header(h) for h in headers)
        return config.with_overrides(
            base_url=base_url,
            token=token,
            timeout=timeout,
            headers=config.headers + extra if extra else None,
        )
    except EasyPortalError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v info, -vv debug).")
def main(verbose: int):
    """API EasyPortal — call OpenAPI endpoints by hand or in bulk from CSV."""
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbose, logging.DEBUG)
    logging.basicConfig(level=level, format=LOG_FORMAT)


@main.command()
@click.argument("spec_path", type=click.Path(exists=True, path_type=Path))
@click.option("-s", "--search", default="", help="Filter by path, summary or tag.")
def endpoints(spec_path: Path, search: str):
    """List the endpoints of an OpenAPI/Swagger document."""
    found = filter_endpoints(_load_catalog(spec_path), search)
    if not found:
        click.echo("No results found")
        return
    for ep in found:
        click.echo(f"{ep.http_method:<7} {ep.path}  {ep.summary}")


@main.command()
@click.argument("spec_path", type=click.Path(exists=True, path_type=Path))
@click.argument("endpoint_key")
def fields(spec_path: Path, endpoint_key: str):
    """Show the input fields of one endpoint ('GET /pets' or its id)."""
    endpoint = _select_endpoint(spec_path, endpoint_key)
    form = form_fields(endpoint)
    if not form:
        click.echo("No parameters required.")
        return
    for f in form:
        flag = "Required" if f.required else "Optional"
        line = f"{f.label:<30} {flag:<9} {'BODY' if f.is_body else '':<5} {f.input_type}"
        if f.description:
            line += f"  {f.description}"
        click.echo(line.rstrip())


@main.command()
@click.argument("spec_path", type=click.Path(exists=True, path_type=Path))
@click.argument("endpoint_key")
@click.option("-d", "--data", "data", multiple=True, help="Field value as name=value (repeatable).")
@request_options
def call(spec_path: Path, endpoint_key: str, data: tuple[str, ...], base_url, token, headers, timeout, config_path):
    """Send one request to an endpoint and show the response."""
    endpoint = _select_endpoint(spec_path, endpoint_key)
    values = _parse_values(data)
    config = _build_config(base_url, token, headers, timeout, config_path)

    missing = missing_required(endpoint, values)
    if missing:
        logger.warning("Missing required fields: %s", ", ".join(missing))

    outcome = RequestExecutor(config).execute(endpoint, values)

    click.echo(f"{outcome.method} {outcome.url}")
    click.echo(f"Status: {outcome.status}  Time: {outcome.elapsed_ms} ms")
    if outcome.is_transport_error:
        click.echo("Request failed before a response was received.")
        click.echo("Check the base URL, network connectivity and TLS settings of the target server.")
    click.echo(_format_body(outcome.body))


@main.command()
@click.argument("spec_path", type=click.Path(exists=True, path_type=Path))
@click.argument("endpoint_key")
@click.argument("csv_path", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", default=Path("."), type=click.Path(path_type=Path), help="Directory for the results CSV.")
@request_options
def batch(spec_path: Path, endpoint_key: str, csv_path: Path, output: Path, base_url, token, headers, timeout, config_path):
    """Run an endpoint once per CSV row and export the results."""
    endpoint = _select_endpoint(spec_path, endpoint_key)
    rows = parse_csv(csv_path.read_text(encoding="utf-8"))
    if not rows:
        click.echo("CSV file has no data rows.")
        return
    config = _build_config(base_url, token, headers, timeout, config_path)

    click.echo(f"Running {len(rows)} rows against {endpoint.http_method} {endpoint.path}...")
    runner = BatchRunner(RequestExecutor(config))
    results = []
    with click.progressbar(length=len(rows), label="Progress") as bar:
        for progress in runner.run(endpoint, rows):
            results = progress.results
            bar.update(1)

    for r in results:
        click.echo(f"  #{r.row_index:<4} {r.success}  {r.status}")

    passed = sum(1 for r in results if r.success == "PASS")
    click.echo(f"{passed}/{len(results)} passed")

    path = export_results([r.to_record() for r in results], output)
    if path:
        click.echo(f"Results saved to {path}")
