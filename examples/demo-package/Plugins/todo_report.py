"""Demo command plugin: report TODO / FIXME markers in the package.

The invocation descriptor arrives as JSON in ``PKGPLUGIN_INVOCATION``;
the report is written to the plugin's output directory.
"""

import json
import os
import re
from pathlib import Path

_MARKER_RE = re.compile(r"\b(TODO|FIXME|HACK)\b")

info = json.loads(os.environ["PKGPLUGIN_INVOCATION"])
package = Path(info["package_path"])
output = Path(info["output_directory"])

matches = []
for path in sorted((package / "Sources").rglob("*.py")):
    for lineno, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        if _MARKER_RE.search(line):
            matches.append(f"{path.relative_to(package)}:{lineno}: {line.strip()}")

report = output / "todo-report.txt"
report.write_text("\n".join(matches) + "\n", encoding="utf-8")
print(f"Found {len(matches)} marker(s); report written to {report}")
