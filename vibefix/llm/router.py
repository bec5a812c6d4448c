"""
Model Router
============
Decides whether a failed request is re-issued against a fallback model.

Routing Strategy:
    1. Send the request to the model the user picked
    2. If that model is the premium identifier AND it failed with a
       quota-classified error (after its own retries), send the identical
       request once to the fallback model
    3. If the fallback also fails, raise the premium model's error, so the
       message stays anchored to the user's explicit choice
    4. Any other model, or any non-quota failure, propagates unchanged

Retry vs. Fallback:
    Retrying is attempt-count bound and lives in retry.py. Fallback is
    one-shot and gated on model identity. The router only sees the final
    outcome of each dispatch.

Telemetry:
    Every dispatch records which model was requested, which one answered,
    and whether fallback was triggered. Only the most recent
    USAGE_LOG_LIMIT events are kept.
"""
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, TypeVar

from vibefix.core.errors import ServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")

USAGE_LOG_LIMIT = 100


class ModelRouter:
    """
    Substitutes a fallback model when the premium model runs out of quota.

    Usage:
        router = ModelRouter("gemini-2.5-pro", "gemini-2.5-flash")
        raw = await router.dispatch(model, lambda m: client.dispatch(request.for_model(m)))
    """

    def __init__(
        self,
        premium_model: str,
        fallback_model: str,
        usage_log_limit: int = USAGE_LOG_LIMIT,
    ) -> None:
        self.premium_model = premium_model
        self.fallback_model = fallback_model
        self._usage_log: Deque[Dict[str, Any]] = deque(maxlen=usage_log_limit)

    def fallback_for(self, model: str, error: ServiceError) -> Optional[str]:
        """
        Return the model to retry against, or None when no fallback applies.

        Parameters
        ----------
        model : str
            The model that failed.
        error : ServiceError
            Its final error.
        """
        if model != self.premium_model or not error.is_quota:
            return None
        if not self.fallback_model or self.fallback_model == model:
            return None
        return self.fallback_model

    async def dispatch(self, model: str, call: Callable[[str], Awaitable[T]]) -> T:
        """
        Run call(model), falling back once on premium quota exhaustion.

        Raises
        ------
        ServiceError
            The primary model's error when it fails and either no fallback
            applies or the fallback fails too.
        """
        try:
            result = await call(model)
        except ServiceError as primary_error:
            fallback = self.fallback_for(model, primary_error)
            if fallback is None:
                self.log_model_usage(model, "")
                raise

            logger.warning(
                "Model %s quota exhausted (%s), falling back to %s",
                model, primary_error.failure_class, fallback,
            )
            try:
                result = await call(fallback)
            except ServiceError as fallback_error:
                logger.error(
                    "Fallback model %s failed (%s), reporting %s error",
                    fallback, fallback_error.failure_class, model,
                )
                self.log_model_usage(model, "", fallback_triggered=True)
                raise primary_error from fallback_error

            self.log_model_usage(model, fallback, fallback_triggered=True)
            return result

        self.log_model_usage(model, model)
        return result

    # -----------------------------------------------------------------------
    # Telemetry
    # -----------------------------------------------------------------------
    def log_model_usage(
        self,
        model_requested: str,
        model_used: str,
        fallback_triggered: bool = False,
    ) -> None:
        """Record one dispatch. model_used is empty when every model failed."""
        self._usage_log.append({
            "model_requested": model_requested,
            "model_used": model_used,
            "fallback_triggered": fallback_triggered,
        })

    def get_model_usage_log(self) -> List[Dict[str, Any]]:
        """Return recorded dispatch events, oldest first."""
        return list(self._usage_log)

    def reset(self) -> None:
        self._usage_log.clear()
