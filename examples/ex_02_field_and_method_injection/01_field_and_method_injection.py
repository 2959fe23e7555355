"""Field and method injection.

``Inject[T]`` fields are assigned right after the initializer returns, then
every ``@inject`` method is called exactly once. An override of an injected
method is called in place of the base method, even without its own marker.
"""

from __future__ import annotations

from graphwire import Inject, Registry, inject


class Clock:
    def now(self) -> str:
        return "12:00"


class AuditLog:
    def __init__(self) -> None:
        self.lines: list[str] = []


class BaseJob:
    clock: Inject[Clock]

    @inject
    def attach_audit_log(self, audit_log: AuditLog) -> None:
        audit_log.lines.append("base attach")
        self.audit_log = audit_log


class ReportJob(BaseJob):
    def attach_audit_log(self, audit_log: AuditLog) -> None:
        audit_log.lines.append(f"report attach at {self.clock.now()}")
        self.audit_log = audit_log

    @inject
    def prepare(self) -> None:
        self.audit_log.lines.append("prepared")


def main() -> None:
    audit_log = AuditLog()

    registry = Registry()
    registry.bind_type(BaseJob, ReportJob)
    registry.bind_type(Clock, Clock)
    registry.bind_instance(AuditLog, audit_log)

    job = registry.build_resolver().get(BaseJob)
    assert isinstance(job, ReportJob)

    print(f"clock={type(job.clock).__name__}")  # => clock=Clock
    print(f"shared_log={job.audit_log is audit_log}")  # => shared_log=True
    print(f"log={audit_log.lines}")  # => log=['report attach at 12:00', 'prepared']


if __name__ == "__main__":
    main()
