import structlog
from shared.observability import ecomm_saga_compensation_total

logger = structlog.get_logger(__name__)

class SagaStep:
    def __init__(self, name, action, compensation=None):
        self.name = name
        self.action = action
        self.compensation = compensation

class SagaOrchestrator:
    def __init__(self):
        self.steps = []

    def add_step(self, name: str, action, compensation=None):
        """Builder pattern to add a step and its rollback compensation."""
        self.steps.append(SagaStep(name, action, compensation))
        return self

    async def execute(self, ctx: dict):
        """Executes steps sequentially. Triggers rollback on any exception.

        The failing step is recorded in ctx["failed_step"]; the original
        exception is re-raised after compensation.
        """
        executed_steps = []
        for step in self.steps:
            try:
                await step.action(ctx)
            except Exception as e:
                ctx["failed_step"] = step.name
                logger.error("saga_step_failed", step=step.name, error=str(e), kind=type(e).__name__)
                await self._rollback(executed_steps, ctx)
                raise
            executed_steps.append(step)
        return ctx

    async def _rollback(self, executed_steps: list, ctx: dict):
        """Executes compensations in reverse order. Wraps each in a try/except."""
        for step in reversed(executed_steps):
            if step.compensation:
                try:
                    await step.compensation(ctx)
                    logger.info("saga_compensated", step=step.name)
                    ecomm_saga_compensation_total.labels(step_name=step.name).inc()
                except Exception as ce:
                    # A failing compensation MUST NOT block other compensations
                    logger.critical("saga_compensation_failed", step=step.name, error=str(ce),
                                    note="manual intervention may be required")
