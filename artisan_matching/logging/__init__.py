"""Structured logging helpers shared by all engine components."""

import logging
from typing import Optional, Union


class ComponentLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that tags every record with a component name.

    Extras passed to an individual call are merged on top of the adapter's
    own, so a call can still override ``component`` when it needs to.
    """

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(
    name: str, component: Optional[str] = None
) -> Union[logging.Logger, ComponentLoggerAdapter]:
    """Get a module logger, optionally bound to a component.

    Example:
        >>> logger = get_logger(__name__, component="routing")
        >>> logger.info("Tier selected", extra={"event": "matching.tier.selected"})
    """
    logger = logging.getLogger(name)

    if component:
        return ComponentLoggerAdapter(logger, {"component": component})

    return logger
