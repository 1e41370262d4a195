"""Automation dispatch: fire-and-forget side effects of completed steps."""

from __future__ import annotations

import abc
import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from .constants import DEFAULT_API_TIMEOUT
from .contracts import AutomationContext, AutomationDirective, AutomationType

logger = logging.getLogger(__name__)


class EffectHandler(metaclass=abc.ABCMeta):
    """Delivers one kind of side effect. Return values are ignored."""

    @abc.abstractmethod
    async def handle(
        self,
        effect_type: AutomationType,
        config: Mapping[str, Any],
        context: AutomationContext,
        outputs: Mapping[str, Any],
    ) -> None:
        raise NotImplementedError


class LoggingEffectHandler(EffectHandler):
    """Records notifications and emails in the log.

    Stands in until a delivery service is wired up.
    """

    async def handle(
        self,
        effect_type: AutomationType,
        config: Mapping[str, Any],
        context: AutomationContext,
        outputs: Mapping[str, Any],
    ) -> None:
        recipients = config.get("recipients") or [context.assigned_to or "unassigned"]
        logger.info(
            f"{effect_type.value} for step {context.step_id} of execution "
            f"{context.execution_id} to {', '.join(map(str, recipients))}: "
            f"{config.get('message') or config.get('subject') or 'step completed'}"
        )


class HttpEffectHandler(EffectHandler):
    """Calls an external endpoint with the execution context and outputs."""

    def __init__(
        self,
        timeout: float = DEFAULT_API_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._timeout = timeout
        self._client = client

    async def handle(
        self,
        effect_type: AutomationType,
        config: Mapping[str, Any],
        context: AutomationContext,
        outputs: Mapping[str, Any],
    ) -> None:
        url = config.get("url")
        if not url:
            raise ValueError(f"api_call automation on step {context.step_id} has no url")

        body = {
            "context": context.model_dump(mode="json"),
            "outputs": dict(outputs),
            "payload": config.get("payload", {}),
        }
        method = str(config.get("method", "POST")).upper()
        headers = dict(config.get("headers", {}))

        if self._client is not None:
            response = await self._client.request(method, url, json=body, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.request(method, url, json=body, headers=headers)
        response.raise_for_status()
        logger.info(
            f"api_call for step {context.step_id} of execution {context.execution_id} "
            f"returned {response.status_code}"
        )


class AutomationDispatcher:
    """Routes a step's automation directive to exactly one effect handler.

    Handler failures are logged and never reach the caller: a completed step
    stays completed whatever happens to its side effect.
    """

    def __init__(
        self,
        handlers: Optional[Dict[AutomationType, EffectHandler]] = None,
        api_timeout: float = DEFAULT_API_TIMEOUT,
    ) -> None:
        if handlers is None:
            log_handler = LoggingEffectHandler()
            handlers = {
                AutomationType.NOTIFICATION: log_handler,
                AutomationType.EMAIL: log_handler,
                AutomationType.API_CALL: HttpEffectHandler(timeout=api_timeout),
            }
        self._handlers: Dict[AutomationType, EffectHandler] = dict(handlers)

    def register(self, effect_type: AutomationType, handler: EffectHandler) -> None:
        self._handlers[effect_type] = handler

    async def dispatch(
        self,
        directive: AutomationDirective,
        context: AutomationContext,
        outputs: Mapping[str, Any],
    ) -> None:
        handler = self._handlers.get(directive.type)
        if handler is None:
            logger.warning(
                f"No handler registered for {directive.type.value} automation "
                f"on step {context.step_id}"
            )
            return

        try:
            await handler.handle(directive.type, directive.config, context, outputs)
        except Exception as e:
            logger.error(
                f"{directive.type.value} automation failed for step {context.step_id} "
                f"of execution {context.execution_id}: {e}"
            )
