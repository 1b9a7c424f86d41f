"""Per-stack behaviour profiles.

Every ``Stack`` member maps to exactly one ``StackProfile`` that declares its
default file, language, validation family, install/start commands and the
container recipe used by the deploy strategy. The mapping is checked for
completeness when the module is imported, so a new ``Stack`` member without a
profile fails fast instead of silently falling back to a default.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from genship.models import Stack


class StackFamily(str, Enum):
    """Which validator check a stack is routed to."""
    JAVASCRIPT = "javascript"
    PYTHON = "python"
    STATIC = "static"
    FULLSTACK = "fullstack"


@dataclass(frozen=True)
class BuildRecipe:
    """Container build recipe for a single project root.

    ``install`` steps run after only the manifest has been copied (layer
    caching); ``build`` steps run after the whole source tree is copied.
    """

    base_image: str
    port: int
    cmd: tuple[str, ...]
    workdir: str = "/app"
    manifest: str | None = None
    install: tuple[str, ...] = ()
    build: tuple[str, ...] = ()


@dataclass(frozen=True)
class StackProfile:
    """Everything stack-specific the pipeline needs to know."""

    stack: Stack
    display_name: str
    default_filename: str
    language: str
    family: StackFamily
    install_commands: tuple[str, ...]
    start_command: str
    recipe: BuildRecipe
    # Composite stacks: (subdirectory, stack) pairs built into one image.
    components: tuple[tuple[str, Stack], ...] = field(default=())


_NODE_IMAGE = "node:18-alpine"

_NPM_MANIFEST = "package*.json"


STACK_PROFILES: dict[Stack, StackProfile] = {
    Stack.REACT: StackProfile(
        stack=Stack.REACT,
        display_name="React",
        default_filename="App.jsx",
        language="javascript",
        family=StackFamily.JAVASCRIPT,
        install_commands=("npm install",),
        start_command="npm start",
        recipe=BuildRecipe(
            base_image=_NODE_IMAGE,
            port=3000,
            cmd=("npm", "start"),
            manifest=_NPM_MANIFEST,
            install=("npm install",),
            build=("npm run build",),
        ),
    ),
    Stack.VUE: StackProfile(
        stack=Stack.VUE,
        display_name="Vue.js",
        default_filename="App.vue",
        language="javascript",
        family=StackFamily.JAVASCRIPT,
        install_commands=("npm install",),
        start_command="npm run serve",
        recipe=BuildRecipe(
            base_image=_NODE_IMAGE,
            port=8080,
            cmd=("npm", "run", "serve"),
            manifest=_NPM_MANIFEST,
            install=("npm install",),
            build=("npm run build",),
        ),
    ),
    Stack.ANGULAR: StackProfile(
        stack=Stack.ANGULAR,
        display_name="Angular",
        default_filename="app.component.ts",
        language="typescript",
        family=StackFamily.JAVASCRIPT,
        install_commands=("npm install",),
        start_command="ng serve",
        recipe=BuildRecipe(
            base_image=_NODE_IMAGE,
            port=4200,
            cmd=("npx", "ng", "serve", "--host", "0.0.0.0"),
            manifest=_NPM_MANIFEST,
            install=("npm install",),
            build=("npm run build",),
        ),
    ),
    Stack.NODE: StackProfile(
        stack=Stack.NODE,
        display_name="Node.js",
        default_filename="server.js",
        language="javascript",
        family=StackFamily.JAVASCRIPT,
        install_commands=("npm install",),
        start_command="node server.js",
        recipe=BuildRecipe(
            base_image=_NODE_IMAGE,
            port=3000,
            cmd=("node", "server.js"),
            manifest=_NPM_MANIFEST,
            install=("npm install --omit=dev",),
        ),
    ),
    Stack.PYTHON: StackProfile(
        stack=Stack.PYTHON,
        display_name="Python",
        default_filename="app.py",
        language="python",
        family=StackFamily.PYTHON,
        install_commands=("pip install -r requirements.txt",),
        start_command="python app.py",
        recipe=BuildRecipe(
            base_image="python:3.12-slim",
            port=8000,
            cmd=("python", "app.py"),
            # requirements.txt is optional, so dependencies install after the full copy.
            build=(
                "if [ -f requirements.txt ]; then pip install --no-cache-dir -r requirements.txt; fi",
            ),
        ),
    ),
    Stack.HTML_CSS_JS: StackProfile(
        stack=Stack.HTML_CSS_JS,
        display_name="HTML/CSS/JS",
        default_filename="index.html",
        language="html",
        family=StackFamily.STATIC,
        install_commands=(),
        start_command="open index.html in your web browser",
        recipe=BuildRecipe(
            base_image="nginx:alpine",
            port=80,
            cmd=("nginx", "-g", "daemon off;"),
            workdir="/usr/share/nginx/html",
        ),
    ),
    Stack.REACT_NATIVE: StackProfile(
        stack=Stack.REACT_NATIVE,
        display_name="React Native",
        default_filename="App.js",
        language="javascript",
        family=StackFamily.JAVASCRIPT,
        install_commands=("npm install",),
        start_command="npx react-native run-android",
        recipe=BuildRecipe(
            base_image=_NODE_IMAGE,
            port=8081,
            cmd=("npm", "start"),
            manifest=_NPM_MANIFEST,
            install=("npm install",),
        ),
    ),
    Stack.ELECTRON: StackProfile(
        stack=Stack.ELECTRON,
        display_name="Electron",
        default_filename="main.js",
        language="javascript",
        family=StackFamily.JAVASCRIPT,
        install_commands=("npm install",),
        start_command="npm start",
        recipe=BuildRecipe(
            base_image=_NODE_IMAGE,
            port=3000,
            cmd=("npm", "start"),
            manifest=_NPM_MANIFEST,
            install=("npm install",),
        ),
    ),
    Stack.NODE_REACT_FULLSTACK: StackProfile(
        stack=Stack.NODE_REACT_FULLSTACK,
        display_name="Node.js + React full-stack",
        default_filename="package.json",
        language="javascript",
        family=StackFamily.FULLSTACK,
        install_commands=("cd backend && npm install", "cd ../frontend && npm install", "cd .."),
        start_command="npm run dev",
        recipe=BuildRecipe(
            base_image=_NODE_IMAGE,
            port=3000,
            cmd=("npm", "run", "dev"),
        ),
        components=(("backend", Stack.NODE), ("frontend", Stack.REACT)),
    ),
}


def _check_profiles() -> None:
    missing = [s.value for s in Stack if s not in STACK_PROFILES]
    if missing:
        raise RuntimeError(f"No stack profile defined for: {', '.join(missing)}")
    for stack, profile in STACK_PROFILES.items():
        if profile.stack is not stack:
            raise RuntimeError(f"Stack profile registered under {stack.value} describes {profile.stack.value}")


_check_profiles()


def get_profile(stack: Stack | str) -> StackProfile:
    """Return the profile for *stack*.

    Raises:
        ValueError: If *stack* is not a known stack name.
    """
    return STACK_PROFILES[Stack(stack)]


def exposed_ports(profile: StackProfile) -> list[int]:
    """Every port a profile's container listens on, components included."""
    ports = [profile.recipe.port]
    for _, component in profile.components:
        port = STACK_PROFILES[component].recipe.port
        if port not in ports:
            ports.append(port)
    return ports
