"""UI Conformance Verifier.

Walks the declared pages and asserts reachability plus the existence,
visibility and enabled-state (or href) of every declared button and link,
and of the fixed footer links.  Buttons with a declared action are handed
to :class:`ActionExecutor` once they pass their structural checks.
"""

import logging
from typing import Optional

from playwright.async_api import Error as PlaywrightError, ElementHandle

from checks.actions import ActionExecutor
from checks.base import PageCheck, display_path
from core.descriptors import DescriptorRegistry, PageDescriptor
from core.errors import ErrorType

logger = logging.getLogger(__name__)


class UIConformanceVerifier(PageCheck):
    """Structural checks for every page in the registry."""

    def __init__(
        self,
        page,
        registry: DescriptorRegistry,
        settings,
        aggregator,
        executor: Optional[ActionExecutor] = None,
    ) -> None:
        super().__init__(page, settings, aggregator)
        self.registry = registry
        self.executor = executor or ActionExecutor(page, settings, aggregator)

    async def run(self) -> None:
        for descriptor in self.registry.pages:
            await self.verify_page(descriptor)

    async def verify_page(self, descriptor: PageDescriptor) -> bool:
        """Check one page; returns ``False`` only if it could not be opened."""
        path = descriptor.path
        name = f"GET {display_path(path)} -> 200"
        response, error = await self.safe_goto(path)
        if response is None:
            self.record(
                name, False, error or "no response", ErrorType.CONNECTIVITY,
            )
            return False
        self.record(
            name, response.status == 200, f"got {response.status}",
            ErrorType.CONNECTIVITY,
        )

        for label in descriptor.buttons:
            await self.check_button(path, label)
        for label in descriptor.links:
            await self.check_link(path, label)
        for label in self.settings.footer_links:
            await self.check_link(path, label)
        return True

    async def _state(self, element: ElementHandle, query: str) -> bool:
        try:
            return await getattr(element, query)()
        except PlaywrightError as e:
            logger.debug("%s failed: %s", query, e)
            return False

    async def check_button(self, path: str, label: str) -> None:
        prefix = f'Button "{label}" on "{display_path(path)}"'
        element = await self.find_control("button", label)
        if not self.record(f"{prefix} exists", element is not None):
            return
        if not self.record(
            f"{prefix} is visible", await self._state(element, "is_visible"),
        ):
            return
        if not self.record(
            f"{prefix} is enabled", await self._state(element, "is_enabled"),
        ):
            return

        action = self.registry.action_for(path, label)
        if action is not None:
            await self.executor.execute(action, element)

    async def check_link(self, path: str, label: str) -> None:
        prefix = f'Link "{label}" on "{display_path(path)}"'
        element = await self.find_control("a", label)
        if not self.record(f"{prefix} exists", element is not None):
            return
        if not self.record(
            f"{prefix} is visible", await self._state(element, "is_visible"),
        ):
            return
        try:
            href = await element.get_attribute("href")
        except PlaywrightError as e:
            logger.debug("Reading href of %r failed: %s", label, e)
            href = None
        self.record(
            f"{prefix} has valid href", bool(href and href.strip()),
            f"href: {href!r}",
        )
