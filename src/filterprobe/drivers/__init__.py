from .base import NavigationError, NavigationResponse, Page, PageDriver

DRIVER_NAMES = ("chrome", "http")


def create_driver(name: str, config) -> PageDriver:
    """Build the page driver selected by name."""
    if name == "chrome":
        from .chrome import ChromeDriver

        return ChromeDriver(
            user_agent=config.user_agent,
            disable_sandbox=config.disable_sandbox,
            extra_args=config.browser_args,
            # room for every worker plus pool resets plus calls left behind by force-aborts
            max_workers=2 * config.concurrency + config.pool_size,
        )
    if name == "http":
        from .http import HttpDriver

        return HttpDriver(user_agent=config.user_agent, limit=max(10, config.concurrency * 4))
    raise ValueError(f"Unknown driver: {name}")


__all__ = [
    "DRIVER_NAMES",
    "NavigationError",
    "NavigationResponse",
    "Page",
    "PageDriver",
    "create_driver",
]
