import uuid
from pathlib import Path
from typing import Optional


class JobOutputs:
    """The running job's own surfaces: step summary Markdown and step outputs."""

    def __init__(self, summary_path: Optional[str] = None, output_path: Optional[str] = None):
        self._summary_path = summary_path
        self._output_path = output_path

    def write_step_summary(self, markdown: str) -> None:
        if not self._summary_path:
            print(markdown)
            return
        with open(self._summary_path, "a", encoding="utf-8") as fp:
            fp.write(markdown)
            if not markdown.endswith("\n"):
                fp.write("\n")

    def set_output(self, name: str, value) -> None:
        value = str(value)
        if not self._output_path:
            print(f"[output] {name}={value}")
            return
        with open(Path(self._output_path), "a", encoding="utf-8") as fp:
            if "\n" in value:
                delimiter = f"ghadelimiter_{uuid.uuid4()}"
                fp.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
            else:
                fp.write(f"{name}={value}\n")

    def set_engine_exit_code(self, exit_code: int) -> None:
        self.set_output("engineExitCode", exit_code)

    def set_exit_summary(self, summary: str) -> None:
        self.set_output("exitSummary", summary)
