"""Simple scaffold for new module projects (filesystem only)
Usage: python -m modpack.create_module --group com.example --name my-mod --out ./my-mod
"""

import argparse
import copy
import json
from pathlib import Path

PROJECT_TEMPLATE = {
    "group": "com.example",
    "name": "my-module",
    "version": "0.1.0-SNAPSHOT",
    "vertx": {
        "platform": {"version": "2.1", "lang": "java"},
        "config": {"main": "", "includes": []},
        "info": {"description": "", "keywords": []},
    },
    "source_sets": {"main": "build/classes/main", "test": "build/classes/test"},
    "dependencies": {"compile": []},
}

README = """# Module: {module}

This is a scaffolded module project. Fill in the implementation and `build.json`,
then run `modpack assemble` to build `mods/{module}`.
"""

MAIN_SOURCES = {
    "java": ("src/main/java/Main.java", "public class Main {{\n  // {module}\n}}\n"),
    "groovy": ("src/main/groovy/Main.groovy", "// {module}\n"),
    "scala": ("src/main/scala/Main.scala", "// {module}\n"),
}


def scaffold(group: str, name: str, version: str, out: Path, lang: str = "java") -> Path:
    out.mkdir(parents=True, exist_ok=True)
    project = copy.deepcopy(PROJECT_TEMPLATE)
    project["group"] = group
    project["name"] = name
    project["version"] = version
    project["vertx"]["platform"]["lang"] = lang
    project["vertx"]["config"]["main"] = f"{lang}:Main" if lang != "java" else "Main"
    module = f"{group}~{name}~{version}"
    with open(out / "build.json", "w", encoding="utf-8") as f:
        json.dump(project, f, indent=2)
    with open(out / "README.md", "w", encoding="utf-8") as f:
        f.write(README.format(module=module))
    rel, body = MAIN_SOURCES.get(lang, MAIN_SOURCES["java"])
    src = out / rel
    src.parent.mkdir(parents=True, exist_ok=True)
    with open(src, "w", encoding="utf-8") as f:
        f.write(body.format(module=module))
    print(f"Scaffolded module project at {out}")
    return out


if __name__ == "__main__":
    p = argparse.ArgumentParser()
    p.add_argument("--group", required=True)
    p.add_argument("--name", required=True)
    p.add_argument("--version", default="0.1.0-SNAPSHOT")
    p.add_argument("--lang", default="java", choices=sorted(MAIN_SOURCES))
    p.add_argument("--out", default="./new_module")
    args = p.parse_args()
    scaffold(args.group, args.name, args.version, Path(args.out), args.lang)
