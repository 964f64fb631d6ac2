import argparse
import logging
import sys

from .config import ConfigError, available_scenarios, load_config
from .naive import is_finite, step

logger = logging.getLogger(__name__)


def format_body(body):
    return (f"Body {body.id}: pos=({body.position.x:.4f}, {body.position.y:.4f}), "
            f"vel=({body.velocity.x:.4f}, {body.velocity.y:.4f})")


def print_state(bodies, file=None):
    for body in bodies:
        print(format_body(body), file=file or sys.stdout)


def run_simulation(bodies, config, report=None):
    """Step `bodies` config.steps times and return the final state.

    `report(step, bodies)` is called before every report_every-th step.
    A state that stops being finite is logged once; the run carries on.
    """
    degenerate = False
    for n in range(config.steps):
        if report is not None and n % config.report_every == 0:
            report(n, bodies)
        bodies = step(bodies, G=config.G, dt=config.dt, epsilon=config.epsilon)
        if not degenerate and not is_finite(bodies):
            degenerate = True
            logger.warning("State became non-finite after step %d (zero mass or overflow?)", n + 1)
    return bodies


def cmd_run(config, bodies):
    def report(n, state):
        print(f"\nStep {n}:")
        print_state(state)

    logger.info("Running %r: %d bodies, %d steps, dt=%g", config.name, len(bodies), config.steps, config.dt)
    print("Starting simulation...")
    final = run_simulation(bodies, config, report)
    print("\nFinal state:")
    print_state(final)
    return 0


def cmd_view(config, bodies):
    from .n_body_pygame import simulate_pygame

    simulate_pygame(bodies, config, title="N-Body Simulation: " + config.name)
    return 0


def build_parser():
    parser = argparse.ArgumentParser(prog="nbody", description="Direct-summation 2D gravity simulator")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v for info, -vv for debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="step a scenario and print its state")
    run.add_argument("--config", type=str, default="sun_planet",
                     help="scenario name (%s) or path to a .toml file" % ", ".join(available_scenarios()))
    run.add_argument("--steps", type=int, help="number of steps (overrides the scenario)")
    run.add_argument("--every", type=int, help="print every N-th step (overrides the scenario)")
    run.add_argument("--dt", type=float, help="time step (overrides the scenario)")
    run.add_argument("--no-validate", action="store_true", help="accept non-positive masses and duplicate ids")

    view = sub.add_parser("view", help="animate a scenario with pygame")
    view.add_argument("--config", type=str, default="solar_system", help="scenario name or path to a .toml file")
    view.add_argument("--no-validate", action="store_true", help="accept non-positive masses and duplicate ids")
    return parser


def setup_logging(verbosity):
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, stream=sys.stderr,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = load_config(args.config)
        if args.command == "run":
            if args.steps is not None:
                config.steps = args.steps
            if args.every is not None:
                config.report_every = args.every
            if args.dt is not None:
                config.dt = args.dt
            config.check_parameters()
        bodies = config.initial_state(validate=not args.no_validate)
    except ConfigError as e:
        parser.error(str(e))

    if args.command == "run":
        return cmd_run(config, bodies)
    return cmd_view(config, bodies)


if __name__ == "__main__":
    sys.exit(main())
