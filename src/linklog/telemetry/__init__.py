"""Telemetry domain: the entry pipeline and its components.

Structure:
    logger.py         TelemetryLogger: level gate, fan-out, flush schedule,
                      uncaught-exception hooks
    entry_factory.py  Level predicate and entry construction (ids, context, stacks)
    ring_buffer.py    Bounded, lossy staging area for remote delivery
    session.py        Day-scoped session identity (session.json)
    performance.py    Labeled interval timing and standard metric ratings
    metrics.py        In-process source of standard timing events
    formatters.py     JSON/CSV export and one-line rendering
    models/           Pydantic models (entries, filters, wire payload, session record)
    sinks/            Console, durable store, remote delivery
    system/           Out-of-band diagnostics (system logger, emergency log)

Import directly from submodules to avoid circular imports:
    from linklog.telemetry.logger import TelemetryLogger
"""

__all__: list[str] = []
