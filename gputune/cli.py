"""Command-line interface for gputune."""

import logging

import click

from .errors import GpuTuneError, UnknownParameterError
from .expressions import ConstraintExpression
from .space import ParameterSpace

SEARCH_METHODS = ["full", "random", "annealing", "pso"]


def _parse_param(text: str) -> tuple[str, list[int]]:
    name, sep, values = text.partition("=")
    if not sep or not name.strip() or not values.strip():
        raise click.BadParameter(f"Expected NAME=v1,v2,..., got '{text}'")
    try:
        return name.strip(), [int(v) for v in values.split(",")]
    except ValueError as e:
        raise click.BadParameter(f"Parameter values must be integers: '{text}'") from e


def _parse_constraint(expression: str, names: list[str]) -> ConstraintExpression:
    try:
        return ConstraintExpression(expression, names)
    except UnknownParameterError as e:
        raise click.BadParameter(
            f"'{e.name}' in '{expression}' is not a declared parameter",
            param_hint="'--constraint'",
        ) from e


@click.group()
@click.option("--verbose", "-v", count=True, help="Increase log verbosity (-v info, -vv debug)")
def cli(verbose):
    """gputune: autotuning of GPU compute kernels."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@click.option("--param", "-p", "params", multiple=True, required=True, help="NAME=v1,v2,...")
@click.option(
    "--constraint",
    "-c",
    "constraints",
    multiple=True,
    help="Comparison over parameter names, e.g. 'TS * ROWS <= 1024'",
)
@click.option("--list/--no-list", "show", default=True, help="Print every configuration")
def space(params, constraints, show):
    """Enumerate a configuration space."""
    parameter_space = ParameterSpace()
    try:
        for text in params:
            name, values = _parse_param(text)
            parameter_space.add_parameter(name, values)
        names = list(parameter_space.parameter_names)
        for expression in constraints:
            constraint = _parse_constraint(expression, names)
            parameter_space.add_constraint(constraint, constraint.parameter_names)
    except GpuTuneError as e:
        raise click.ClickException(str(e)) from e

    configurations = parameter_space.enumerate_configurations()
    click.echo(
        f"{len(configurations)} of {parameter_space.num_permutations} configurations are legal"
    )
    if show:
        for config in configurations:
            click.echo("  " + " ".join(s.config_string() for s in config))


@cli.command()
@click.option("--method", "-m", default="full", type=click.Choice(SEARCH_METHODS))
@click.option("--fraction", default=0.5, type=float, help="Share of the space explored by heuristics")
@click.option("--temperature", default=4.0, type=float, help="Annealing start temperature")
@click.option("--swarm-size", default=3, type=int)
@click.option("--seed", default=None, type=int, envvar="GPUTUNE_SEED")
@click.option("--quiet", "-q", is_flag=True, help="Only print the best result")
@click.option("--json", "json_path", default=None, type=click.Path(dir_okay=False))
@click.option("--csv", "csv_path", default=None, type=click.Path(dir_okay=False))
def demo(method, fraction, temperature, swarm_size, seed, quiet, json_path, csv_path):
    """Tune the built-in matrix-vector sample."""
    from .samples import build_gemv_tuner

    tuner = build_gemv_tuner(seed=seed, suppress_output=quiet)
    if method == "random":
        tuner.use_random_search(fraction)
    elif method == "annealing":
        tuner.use_annealing(fraction, temperature)
    elif method == "pso":
        tuner.use_pso(fraction, swarm_size, 0.4, 0.0, 0.4)

    tuner.tune()
    tuner.print_to_screen()
    tuner.print_formatted()
    if csv_path:
        tuner.print_to_file(csv_path)
    if json_path:
        tuner.print_json(json_path, {"sample": "gemv", "method": method})

    best = tuner.best_result()
    if best is None:
        raise click.ClickException("No configuration produced a correct result")
    click.echo(f"Best: {best.time_ms:.3f} ms with {best.configuration.to_dict()}")
