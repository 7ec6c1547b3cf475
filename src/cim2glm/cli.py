"""
Command line entry point: `cim2glm [options] input.xml output_root`.
"""
from __future__ import annotations

import argparse
import logging
import sys

from .pint_setup import Q_
from .cim.access import CIMGraph
from .exceptions import FatalInputError
from .glm.writer import write_glm
from .network.config import TranslatorConfig
from .network.translator import translate

__all__ = ["build_parser", "config_from_args", "main"]

logger = logging.getLogger(__name__)

ENCODINGS = {"u": "utf-8", "i": "iso-8859-1"}


def _yes_no(value: str) -> bool:
    v = value.strip().lower()
    if not v or v[0] not in "yn":
        raise argparse.ArgumentTypeError(f"expected y or n, got '{value}'")
    return v[0] == "y"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cim2glm",
        description="Translate a CIM distribution feeder (RDF/XML) into a GridLAB-D model"
    )
    parser.add_argument("input", help="CIM RDF/XML input file")
    parser.add_argument("output_root", help="writes <output_root>_base.glm and <output_root>_busxy.glm")
    parser.add_argument(
        "-l", dest="load_scale",
        type=float,
        default=1.0,
        help="load scaling factor (default: 1)"
    )
    parser.add_argument(
        "-t", dest="want_secondary",
        type=_yes_no,
        default=True,
        help="y/n to include or ignore secondaries (default: y)"
    )
    parser.add_argument(
        "-e", dest="encoding",
        choices=sorted(ENCODINGS),
        default="u",
        help="input encoding, u for UTF-8 or i for ISO-8859-1 (default: u)"
    )
    parser.add_argument(
        "-f", dest="frequency",
        type=float,
        default=60.0,
        help="system frequency in Hz (default: 60)"
    )
    parser.add_argument(
        "-v", dest="voltage_multiplier",
        type=float,
        default=1.0,
        help="multiplier that converts CIM voltages to V (default: 1)"
    )
    parser.add_argument(
        "-s", dest="power_multiplier",
        type=float,
        default=1.0,
        help="multiplier that converts CIM p, q and s to W, var and VA (default: 1)"
    )
    parser.add_argument(
        "-q", dest="unique_names",
        type=_yes_no,
        default=True,
        help="y/n: line names are unique, else use the mRID (default: y)"
    )
    parser.add_argument(
        "-n", dest="schedule_name",
        default="",
        help="schedule (player) name that scales the triplex load base powers"
    )
    parser.add_argument("-z", dest="z_coeff", type=float, help="constant impedance portion of all loads")
    parser.add_argument("-i", dest="i_coeff", type=float, help="constant current portion of all loads")
    parser.add_argument("-p", dest="p_coeff", type=float, help="constant power portion of all loads")
    parser.add_argument("--verbose", action="store_true", help="log translation progress")
    return parser


def config_from_args(args: argparse.Namespace) -> TranslatorConfig:
    zip_coefficients = None
    coeffs = (args.z_coeff, args.i_coeff, args.p_coeff)
    if any(c is not None for c in coeffs):
        zip_coefficients = tuple(c or 0.0 for c in coeffs)
        if sum(zip_coefficients) <= 0.0:
            raise ValueError("the ZIP coefficients must sum to a positive value")
    return TranslatorConfig(
        load_scale=args.load_scale,
        want_secondary=args.want_secondary,
        frequency=Q_(args.frequency, "Hz"),
        voltage_multiplier=args.voltage_multiplier,
        power_multiplier=args.power_multiplier,
        unique_names=args.unique_names,
        schedule_name=args.schedule_name,
        zip_coefficients=zip_coefficients
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s"
    )
    try:
        config = config_from_args(args)
    except ValueError as err:
        parser.error(str(err))
    try:
        cim = CIMGraph.from_file(args.input, ENCODINGS[args.encoding], namespace=config.cim_namespace)
    except FatalInputError as err:
        logger.error(str(err))
        return 1
    result = translate(cim, config)
    write_glm(result, args.output_root)
    for d in result.diagnostics:
        print(d, file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
