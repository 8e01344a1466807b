"""Stand-in for an AI assistant CLI, run with the current interpreter.

Usage:
    python fake_assistant.py --version
    python fake_assistant.py -m <model> -p <prompt>

Behaviour is chosen by markers inside the prompt:
    [[sleep]]        never answers (sleeps for a minute)
    [[prose]]        plain prose without braces
    [[noisy]]        credential banners and log lines around the JSON
    [[stderr]]       JSON on stderr, nothing on stdout
    [[empty]]        prints nothing
    [[exit:N]]       exit with code N after answering
    [[score:N]]      score to report (default 90)
    [[violation]]    report one warning violation

Set FAKE_ASSISTANT_UNAVAILABLE=1 to make --version fail.
"""

import json
import os
import re
import sys
import time


def _markers(prompt: str) -> dict[str, str]:
    return {m.group(1): m.group(2) or "" for m in re.finditer(r"\[\[(\w+)(?::([^\]]*))?\]\]", prompt)}


def main(argv: list[str]) -> int:
    if "--version" in argv:
        if os.environ.get("FAKE_ASSISTANT_UNAVAILABLE"):
            print("fake-assistant: not logged in", file=sys.stderr)
            return 1
        print("fake-assistant 1.0.0")
        return 0

    prompt = argv[argv.index("-p") + 1] if "-p" in argv else ""
    markers = _markers(prompt)

    if "sleep" in markers:
        time.sleep(60)
        return 0

    if "empty" in markers:
        return int(markers.get("exit") or 0)

    if "prose" in markers:
        print("The project looks reasonable overall, although naming could improve.")
        print("No structured answer is available for this request.")
        return int(markers.get("exit") or 0)

    payload = {
        "score": int(markers.get("score") or 90),
        "summary": "Fake review of the project",
        "violations": [],
        "strengths": ["Readable modules"],
        "recommendations": [],
    }
    if "violation" in markers:
        payload["violations"].append(
            {
                "severity": "warning",
                "file": "src/app.py",
                "line": 3,
                "message": "Function is too long",
                "type": "quality",
            }
        )

    body = "```json\n" + json.dumps(payload, indent=2) + "\n```"

    if "stderr" in markers:
        print(body, file=sys.stderr)
    elif "noisy" in markers:
        print("Loaded cached credentials.")
        print("WARNING: experimental model {preview}")
        print("Let me look at the project first.")
        print(json.dumps(payload))
    else:
        print("Here is my review.")
        print(body)

    return int(markers.get("exit") or 0)


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
