from __future__ import annotations

import logging

from ...general.enums import PhaseShuntConnectionKind
from ..context import TranslationContext
from ..loads import accumulate_load

__all__ = ["process_loads"]

logger = logging.getLogger(__name__)


# LoadResponseCharacteristic attributes, in `accumulate_load` order.
_RESPONSE_ATTRIBUTES = (
    "pVoltageExponent",
    "qVoltageExponent",
    "pConstantImpedance",
    "pConstantCurrent",
    "pConstantPower",
    "qConstantImpedance",
    "qConstantCurrent",
    "qConstantPower",
)


def process_loads(ctx: TranslationContext) -> None:
    """
    Accumulates every EnergyConsumer into the load of its bus. A consumer
    without a LoadResponseCharacteristic is pure constant power.
    """
    cim = ctx.cim
    smult = ctx.config.power_multiplier
    count = 0
    for res in cim.instances("EnergyConsumer"):
        bus = ctx.bus(res, 1)
        if bus is None:
            continue
        phs = cim.wire_phases(res, "EnergyConsumerPhase.EnergyConsumer", "EnergyConsumerPhase.phase")
        conn = PhaseShuntConnectionKind.parse(cim.get_enum(res, "EnergyConsumer.phaseConnection"))
        p = smult * cim.get_attribute(res, "EnergyConsumer.pfixed", 1.0)
        q = smult * cim.get_attribute(res, "EnergyConsumer.qfixed", 0.0)
        ctx.total_load += p

        response = cim.get_resource(res, "EnergyConsumer.LoadResponse")
        if response is None:
            zip_args = (0.0, 0.0, 0.0, 0.0, 100.0, 0.0, 0.0, 100.0)
        else:
            zip_args = tuple(
                cim.get_attribute(response, f"LoadResponseCharacteristic.{a}", 0.0)
                for a in _RESPONSE_ATTRIBUTES
            )

        bus.set_nominal_voltage(ctx.base_voltage_ln(res))
        if conn.is_delta:
            bus.mark_delta()
        accumulate_load(bus, phs, p, q, *zip_args)
        count += 1
    logger.info(f"processed {count} loads, total {ctx.total_load:.6g} W")
