"""Ordered convergence of every subsystem of an Astarte instance.

Subsystems depend on each other: the microservices need the broker, the
database and the CA; the gateway needs the microservices. Steps therefore run
one at a time, in a fixed order, and the first failure stops the pass.
"""
from typing import List, Sequence
from astarte_operator.resources.astarte import Astarte
from astarte_operator.resources.components import (
    AstarteComponentResource,
    Credentials,
    ErlangConfiguration,
    PriorityClasses,
    RabbitMQ,
    Cassandra,
    CFSSL,
    CFSSLCASecret,
    VerneMQ,
    Dashboard,
    microservices,
)


def build_reconcile_plan(astarte: Astarte) -> List[AstarteComponentResource]:
    plan = [
        Credentials(astarte),
        ErlangConfiguration(astarte),
        PriorityClasses(astarte),
        RabbitMQ(astarte),
        Cassandra(astarte),
        CFSSL(astarte),
    ]
    # Later platforms let CFSSL keep its CA in a Secret by itself
    if astarte.is_version_before("1.0.0"):
        plan.append(CFSSLCASecret(astarte))
    plan.extend(microservices(astarte))
    plan.append(VerneMQ(astarte))
    plan.append(Dashboard(astarte))
    return plan


async def reconcile_resources(
    astarte: Astarte, plan: Sequence[AstarteComponentResource] = None
) -> None:
    """Converge every step of `plan`, stopping at the first error."""
    if plan is None:
        plan = build_reconcile_plan(astarte)
    for step in plan:
        astarte.logger.debug(f"Reconciling {step!r}")
        try:
            await step.ensure()
        except Exception as ex:
            astarte.logger.error(f"Reconciliation of {step!r} failed: {ex}")
            raise
