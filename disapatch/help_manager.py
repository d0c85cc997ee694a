"""
Help Manager

Loads the packaged help topics: the main help, the combined examples and
one examples page per command.
"""

from pathlib import Path
from typing import List, Optional

HELP_SUFFIX = "_help.txt"
EXAMPLES_SUFFIX = "_examples"


class HelpManager:
    """Reads help topics from the help directory"""

    def __init__(self, help_dir: Optional[Path] = None):
        self.help_dir = Path(help_dir) if help_dir else Path(__file__).parent / "help"

    def topic_file(self, topic: str) -> Path:
        """Help file for a topic; command names may use dashes"""
        return self.help_dir / f"{topic.replace('-', '_')}{HELP_SUFFIX}"

    def available_topics(self) -> List[str]:
        """Topic names, main help excluded"""
        topics = [path.name[:-len(HELP_SUFFIX)] for path in self.help_dir.glob(f"*{HELP_SUFFIX}")]
        return sorted(topic for topic in topics if topic != "main")

    def get_help(self, topic: str = "main") -> str:
        """Text of a help topic, or a pointer to the known topics"""
        help_file = self.topic_file(topic)
        if not help_file.is_file():
            return (f"No help available for: {topic}\n"
                    f"Available topics: {', '.join(self.available_topics())}")
        return help_file.read_text(encoding='utf-8')

    def get_command_examples(self, command: str) -> str:
        """Examples page of one command"""
        return self.get_help(f"{command}{EXAMPLES_SUFFIX}")

    def show_help(self, topic: Optional[str] = None) -> None:
        """Print a help topic (main help by default)"""
        print(self.get_help(topic or "main"))

    def show_command_examples(self, command: str) -> None:
        print(self.get_command_examples(command))

    def show_examples(self) -> None:
        print(self.get_help("examples"))
