"""Stop-then-start deployment of a tagged stack"""

import logging
from typing import List, Optional, Sequence

from ..exceptions import PullError, StartError, TeardownError
from ..models import RuntimeConfig
from ..runtime.base import ContainerRuntime, RuntimeOperationError, UnitNotRunningError

logger = logging.getLogger(__name__)


class DeploymentExecutor:
    """Tears down the running stack, pulls the target images, starts the stack

    There is no overlap between the old and new stack.
    """

    def __init__(self, runtime: ContainerRuntime, runtime_config: Optional[RuntimeConfig] = None):
        """Initialize executor

        Args:
            runtime: Container runtime
            runtime_config: Supplies the image reference template
        """
        self.runtime = runtime
        self.runtime_config = runtime_config or RuntimeConfig()

    async def deploy(self, target_tag: str, units: Sequence[str]) -> None:
        """Replace the running stack with ``units`` at ``target_tag``

        Raises:
            TeardownError: Prior stack could not be stopped or removed
            PullError: Any image of the target tag could not be pulled
            StartError: The new stack could not be started
        """
        logger.info(f"Deploying {len(units)} unit(s) at tag {target_tag}")
        await self.teardown()
        await self.pull_images(target_tag, units)
        await self.start_stack(target_tag)

    async def teardown(self) -> List[str]:
        """Stop and remove every running unit, last started first

        Returns:
            Names of the units torn down
        """
        try:
            running = await self.runtime.list_units()
        except RuntimeOperationError as e:
            raise TeardownError(f"Cannot list running units: {e}") from e

        removed = []
        for unit in reversed(running):
            for action in (self.runtime.stop, self.runtime.remove):
                try:
                    await action(unit.name)
                except UnitNotRunningError:
                    logger.debug(f"{unit.name} already stopped, skipping {action.__name__}")
                except RuntimeOperationError as e:
                    raise TeardownError(
                        f"Cannot {action.__name__} unit {unit.name}: {e}", unit=unit.name
                    ) from e
            removed.append(unit.name)

        logger.info(f"Torn down {len(removed)} unit(s)")
        return removed

    async def pull_images(self, target_tag: str, units: Sequence[str]) -> List[str]:
        """Pull every unit image; the first failure aborts the step"""
        images = []
        for unit in units:
            image = self.runtime_config.image_for(unit, target_tag)
            try:
                await self.runtime.pull(image)
            except RuntimeOperationError as e:
                raise PullError(f"Cannot pull {image}: {e}", unit=unit) from e
            images.append(image)

        logger.info(f"Pulled {len(images)} image(s) for tag {target_tag}")
        return images

    async def start_stack(self, target_tag: str) -> None:
        """Start all units together from the live descriptor"""
        try:
            descriptor = await self.runtime.read_descriptor()
        except RuntimeOperationError as e:
            raise StartError(f"Cannot read deployment descriptor: {e}") from e

        try:
            await self.runtime.start(descriptor, target_tag)
        except RuntimeOperationError as e:
            raise StartError(f"Cannot start stack at tag {target_tag}: {e}", unit=e.unit) from e

        logger.info(f"Stack started at tag {target_tag}")
