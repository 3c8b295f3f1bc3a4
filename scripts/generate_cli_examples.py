from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

EXAMPLES_ROOT = Path("examples/cli-options")
BASE_ARGS = ["--width", "160", "--height", "160", "--max-iterations", "200"]


@dataclass
class Expected:
    path: Path


@dataclass
class Example:
    name: str
    args: list[str]
    expected: list[Expected]
    clean: list[Path] | None = None

    def full_args(self) -> list[str]:
        return ["python", "render.py", *self.args]


def _example(name: str, filename: str, *args: str) -> Example:
    output = EXAMPLES_ROOT / name / filename
    return Example(
        name=name,
        args=[*BASE_ARGS, *args, "--output", str(output)],
        expected=[Expected(output)],
        clean=[EXAMPLES_ROOT / name],
    )


EXAMPLES: list[Example] = [
    _example("default-viewport", "default.png"),
    _example("max-iterations", "high-iterations.png", "--max-iterations", "2000"),
    _example("width", "wide.png", "--width", "320"),
    _example("height", "short.png", "--height", "90"),
    _example("seahorse-valley", "seahorse.png", "--x1", "-0.8", "--x2", "-0.7", "--y1", "0.05", "--y2", "0.15"),
    _example("zero-corner", "zero-corner.png", "--x1", "0", "--x2", "0.5", "--y1", "0", "--y2", "0.5"),
    _example("workers", "single-worker.png", "--workers", "1"),
    _example("many-workers", "more-workers-than-rows.png", "--height", "8", "--workers", "32"),
    _example("kernel", "pure-python.png", "--kernel", "python", "--width", "64", "--height", "64"),
    _example("timeout", "bounded.png", "--timeout", "60"),
    _example("no-retry", "no-retry.png", "--no-retry"),
    _example("query", "from-query.png", "--query", "x1=-2&y1=-1.5&x2=1&y2=1.5&maxIter=100"),
    _example("format", "jpeg-output.jpg", "--format", "jpg"),
    _example("verbose", "diagnostic.png", "--verbose"),
]


def _ensure_clean(paths: Iterable[Path]) -> None:
    for path in paths:
        if path.exists():
            if path.is_dir():
                shutil.rmtree(path)
            else:
                path.unlink()


def _prepare(example: Example) -> None:
    _ensure_clean(example.clean or [])
    for expected in example.expected:
        expected.path.parent.mkdir(parents=True, exist_ok=True)


def _verify(example: Example) -> None:
    for expected in example.expected:
        if not expected.path.is_file():
            raise RuntimeError(f"Expected file {expected.path} was not created")


def main() -> None:
    EXAMPLES_ROOT.mkdir(parents=True, exist_ok=True)
    for example in EXAMPLES:
        print(f"\n[cli-example] {example.name}")
        _prepare(example)
        completed = subprocess.run(example.full_args(), check=True)
        if completed.returncode != 0:
            raise RuntimeError(f"Example {example.name} failed with {completed.returncode}")
        _verify(example)
    print("\nAll CLI examples generated successfully.")


if __name__ == "__main__":
    main()
