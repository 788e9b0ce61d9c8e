import logging

from spheretrace.common import Scene, Settings, default_scene, new_frame
from spheretrace.image_io import save_image

logger = logging.getLogger(__name__)


class App:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.world: Scene = self.create_world()

        self.image = new_frame(settings.width, settings.height, self.world.background)

    def run(self):
        raise NotImplementedError

    def create_world(self) -> Scene:
        return default_scene(self.settings.mode)

    @property
    def frame_buffer(self) -> bytes:
        return self.image.tobytes()

    def save(self, filename=None):
        filename = filename or self.settings.output
        save_image(filename, self.settings.width, self.settings.height, self.image)
        logger.info(f"Saved {filename}")
