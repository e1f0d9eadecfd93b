from __future__ import annotations

import json
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, List, Optional


class CmdError(Exception):
    pass


def run(cmd: List[str], cwd: Optional[str]) -> str:
    """Execute a command, stream both pipes, and return ONLY stdout text.

    Important: Some callers JSON-parse the return; never mix stderr into it.
    """
    import threading

    print(f"Running: {' '.join(cmd)}")
    try:
        proc = subprocess.Popen(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            bufsize=1,
        )
    except FileNotFoundError as ex:
        raise CmdError(f"Executable not found: {cmd[0]}") from ex

    stdout_buf: list[str] = []

    def pump(pipe, tag: str) -> None:
        try:
            for line in iter(pipe.readline, ""):
                if not line:
                    continue
                line = line.rstrip()
                # Echo to console
                print(line, flush=True)
                if tag == "stdout":
                    stdout_buf.append(line)
        finally:
            pipe.close()

    t_out = threading.Thread(target=pump, args=(proc.stdout, "stdout"), daemon=True)
    t_err = threading.Thread(target=pump, args=(proc.stderr, "stderr"), daemon=True)
    t_out.start()
    t_err.start()
    rc = proc.wait()
    t_out.join()
    t_err.join()

    out_text = "\n".join(stdout_buf).strip()
    if rc != 0:
        raise CmdError(f"Command failed ({rc}): {' '.join(cmd)}\nSTDOUT:\n{out_text}")
    return out_text


def cdktf(project_dir: Path, args: List[str]) -> str:
    return run(["cdktf", *args], cwd=str(project_dir))


def read_stack_outputs(project_dir: Path, stack: str) -> Dict[str, str]:
    """Return the deployed stack outputs as a flat name -> value map."""
    with tempfile.TemporaryDirectory() as tmp:
        out_file = Path(tmp) / "outputs.json"
        cdktf(project_dir, ["output", stack, "--outputs-file", str(out_file)])
        if not out_file.exists():
            raise CmdError(f"cdktf did not write an outputs file for stack {stack}")
        data = json.loads(out_file.read_text(encoding="utf-8"))
    # cdktf nests outputs under the stack name
    values = data.get(stack, data)
    return {str(k): str(v) for k, v in values.items()}
