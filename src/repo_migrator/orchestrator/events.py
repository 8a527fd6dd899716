"""Per-file update hooks emitted while generating and verifying."""

from repo_migrator.models import FileNode, FileStatus, GenerationProgress
from repo_migrator.utils import flatten_files


class FileEvents:
    """No-op hooks; subclasses override the ones they need."""

    def on_file_start(self, path: str) -> None:
        pass

    def on_file_chunk(self, path: str, content: str) -> None:
        pass

    def on_file_generated(self, path: str, content: str) -> None:
        pass

    def on_file_error(self, path: str, error: Exception) -> None:
        pass

    def on_file_fixed(self, path: str, content: str) -> None:
        pass

    def on_progress(self, progress: GenerationProgress) -> None:
        pass


class ForwardingFileEvents(FileEvents):
    """Passes every event on to an optional downstream listener."""

    def __init__(self, listener: FileEvents | None = None) -> None:
        self.listener = listener or FileEvents()

    def on_file_start(self, path: str) -> None:
        self.listener.on_file_start(path)

    def on_file_chunk(self, path: str, content: str) -> None:
        self.listener.on_file_chunk(path, content)

    def on_file_generated(self, path: str, content: str) -> None:
        self.listener.on_file_generated(path, content)

    def on_file_error(self, path: str, error: Exception) -> None:
        self.listener.on_file_error(path, error)

    def on_file_fixed(self, path: str, content: str) -> None:
        self.listener.on_file_fixed(path, content)

    def on_progress(self, progress: GenerationProgress) -> None:
        self.listener.on_progress(progress)


class TreeFileEvents(ForwardingFileEvents):
    """Applies file events to a target FileNode tree in place, then forwards them."""

    def __init__(self, nodes: list[FileNode], listener: FileEvents | None = None) -> None:
        super().__init__(listener)
        self.nodes = nodes
        self._index = {node.path: node for node in flatten_files(nodes) if node.is_file}

    def _node(self, path: str) -> FileNode | None:
        return self._index.get(path)

    def on_file_start(self, path: str) -> None:
        node = self._node(path)
        if node is not None:
            node.status = FileStatus.IN_PROGRESS
            node.content = ""
        super().on_file_start(path)

    def on_file_chunk(self, path: str, content: str) -> None:
        node = self._node(path)
        if node is not None:
            node.content = content
        super().on_file_chunk(path, content)

    def on_file_generated(self, path: str, content: str) -> None:
        node = self._node(path)
        if node is not None:
            node.status = FileStatus.DONE
            node.content = content
        super().on_file_generated(path, content)

    def on_file_error(self, path: str, error: Exception) -> None:
        node = self._node(path)
        if node is not None:
            node.status = FileStatus.ERROR
        super().on_file_error(path, error)

    def on_file_fixed(self, path: str, content: str) -> None:
        node = self._node(path)
        if node is not None:
            node.content = content
        super().on_file_fixed(path, content)
