"""Contains the name for the logger of GradKit modules.

``gradkit`` uses a simple logging system based on the
`Logging <https://docs.python.org/3/library/logging.html>`__ standard library.
Logging messages are grouped in different levels:

* ``DEBUG``: Construction of finite-difference adapters and entry into checks.
* ``INFO``: A derivative check that failed in one of the non-raising variants.
* ``WARNING``: An indication that something unexpected
    happened which may require attention, e.g. a step size that vanished
    when added to a coordinate.

By default, only messages of level ``WARNING`` are displayed.

Calling applications can configure the format and log level of the displayed messages
by `Configuring Logging <https://docs.python.org/3/howto/logging.html#configuring-logging>`__
for ``gradkit.logger.gradkit_logger``, e.g.::

    >>> import logging
    >>> logging.basicConfig(
    ...     level=logging.INFO,
    ...     format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    ... )
"""
import logging

logger_name = "gradkit"
gradkit_logger = logging.getLogger(logger_name)
