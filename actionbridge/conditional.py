"""If/then/else and OR-chain execution on top of the engine and state evaluator."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict

from actionbridge.executor import SMART_DELAY, ExecutionEngine
from actionbridge.state import StateEvaluator
from actionbridge.types import ConditionalResult
from actionbridge.utils import split_ids

logger = logging.getLogger(__name__)


class IfThenElse(BaseModel):
    model_config = ConfigDict(frozen=True)

    predicate: str
    then_chain: list[str]
    else_chain: list[str] | None = None


class OrChain(BaseModel):
    model_config = ConfigDict(frozen=True)

    chains: list[list[str]]


Condition = IfThenElse | OrChain


@dataclass(frozen=True)
class ChainOutcome:
    success: bool
    executed_commands: list[str]


def parse_or_chains(raw: str) -> OrChain:
    """Parse ``a,b|c,d`` into an OR of flat chains."""
    return OrChain(chains=[split_ids(group) for group in raw.split("|")])


def parse_if_then_else(check: str | None, then: str | None, otherwise: str | None) -> IfThenElse | None:
    """Build an if/then/else from its three textual fields.

    When `then` holds ``|`` alternatives only the first one becomes the
    then-branch.
    """
    if check is None or then is None:
        return None
    alternatives = then.split("|")
    if len(alternatives) > 1:
        logger.info("Using first of %d then-alternatives for '%s'", len(alternatives), check)
    return IfThenElse(
        predicate=check.strip(),
        then_chain=split_ids(alternatives[0]),
        else_chain=split_ids(otherwise) if otherwise is not None else None,
    )


class ConditionalExecutor:
    """One-shot evaluation of conditions; holds no state between calls."""

    def __init__(self, engine: ExecutionEngine, evaluator: StateEvaluator) -> None:
        self.engine = engine
        self.evaluator = evaluator

    def execute(self, condition: Condition, force: bool = False) -> ConditionalResult:
        logger.info("Executing conditional %r (force=%s)", condition, force)
        if isinstance(condition, IfThenElse):
            return self._if_then_else(condition, force)
        if isinstance(condition, OrChain):
            return self._or_chain(condition, force)
        raise TypeError(f"unsupported condition: {type(condition).__name__}")

    def run_chain(self, command_ids: list[str], force: bool) -> ChainOutcome:
        """Run a flat chain; under force every command is issued."""
        results = self.engine.execute_chain(command_ids, SMART_DELAY, force=force)
        executed = [result.command_id for result in results]
        all_succeeded = all(result.success for result in results)
        return ChainOutcome(
            success=all_succeeded or (force and bool(executed)),
            executed_commands=executed,
        )

    def _if_then_else(self, condition: IfThenElse, force: bool) -> ConditionalResult:
        met = self.evaluator.evaluate(condition.predicate)
        logger.info("Condition '%s' = %s", condition.predicate, met)

        if met:
            outcome = self.run_chain(condition.then_chain, force)
            return ConditionalResult(
                success=outcome.success,
                executed_commands=outcome.executed_commands,
                message="Condition met, executed then branch",
                condition_met=True,
            )
        if condition.else_chain is not None:
            outcome = self.run_chain(condition.else_chain, force)
            return ConditionalResult(
                success=outcome.success,
                executed_commands=outcome.executed_commands,
                message="Condition not met, executed else branch",
                condition_met=False,
            )
        return ConditionalResult(
            success=True,
            executed_commands=[],
            message="Condition not met, no else branch",
            condition_met=False,
        )

    def _or_chain(self, condition: OrChain, force: bool) -> ConditionalResult:
        attempted: list[str] = []
        total = len(condition.chains)
        for index, chain in enumerate(condition.chains, start=1):
            if not chain:
                logger.warning("Skipping empty OR chain %d/%d", index, total)
                continue
            logger.info("Trying OR chain %d/%d: %s", index, total, chain)
            outcome = self.run_chain(chain, force)
            attempted.extend(outcome.executed_commands)
            if outcome.success:
                return ConditionalResult(
                    success=True,
                    executed_commands=attempted,
                    message=f"OR chain succeeded at branch {index}",
                )
        return ConditionalResult(
            success=False,
            executed_commands=attempted,
            error="All OR chains failed",
        )
