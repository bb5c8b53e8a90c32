"""Template registry: maps project options to an ordered step sequence.

``steps_for`` is a pure function of its inputs.  It reads nothing from the
project being generated and runs nothing; it only renders the packaged
templates into ``WriteFile`` payloads.  The pipeline executes the returned
steps strictly in order.

Layouts:

* standalone -- the site is generated directly in ``<project>/``.
* monorepo   -- selected blockchain tooling puts the site under
  ``<project>/packages/site`` and the contracts under
  ``<project>/packages/blockchain``.
"""

from __future__ import annotations

import posixpath
from types import MappingProxyType
from typing import Callable

from ..config import TEMPLATE_REPOSITORIES, BlockchainTooling, Framework, PackageManager
from ..errors import RegistryError
from ..options import ProjectOptions
from .steps import (
    GenerationStep,
    MakeDirectory,
    MergeJSON,
    RemovePath,
    RunCommand,
    WriteFile,
)
from .templates import TemplateRenderer, default_renderer


# ---------------------------------------------------------------------------
# Static tables
# ---------------------------------------------------------------------------

NEXTJS_DEPENDENCIES: MappingProxyType[str, str] = MappingProxyType({
    "@tanstack/react-query": "^5.51.23",
    "@radix-ui/react-slot": "^1.1.1",
    "@radix-ui/react-dropdown-menu": "^2.1.3",
    "@radix-ui/react-separator": "^1.1.1",
    "lucide-react": "^0.468.0",
    "class-variance-authority": "^0.7.1",
    "tailwind-merge": "^2.5.5",
    "tailwindcss-animate": "^1.0.7",
    "clsx": "^2.1.1",
    "viem": "2.x",
    "wagmi": "^2.14.8",
})

TSCONFIG_PATHS: MappingProxyType[str, list[str]] = MappingProxyType({"@/*": ["./*"]})

PACKAGE_MANAGER_FLAGS: MappingProxyType[PackageManager, str] = MappingProxyType({
    PackageManager.NPM: "--use-npm",
    PackageManager.YARN: "--use-yarn",
    PackageManager.PNPM: "--use-pnpm",
})

# (directory created before the file, or None when the scaffold provides it; template)
NEXTJS_FILES: tuple[tuple[str | None, str], ...] = (
    (None, "src/app/layout.tsx"),
    ("src/providers", "src/providers/WagmiProvider.tsx"),
    (None, "wagmi.config.ts"),
    ("src/lib", "src/lib/utils.ts"),
    (None, "src/app/globals.css"),
    (None, "tailwind.config.ts"),
    (None, "src/components/ui/button.tsx"),
    (None, "src/components/ui/card.tsx"),
    (None, "src/components/ui/dropdown-menu.tsx"),
    (None, "src/components/ui/separator.tsx"),
    ("public", "public/noise.svg"),
    (None, "public/arrow.svg"),
    (None, "public/metamask-logo.svg"),
    (None, "src/components/Hero.tsx"),
    (None, "src/components/navbar.tsx"),
    (None, "src/app/page.tsx"),
)

NEXTJS_TEMPLATE_CONTEXT: MappingProxyType[str, object] = MappingProxyType({"ssr": True})

MONOREPO_PACKAGES = "packages"
SITE_PACKAGE = "packages/site"
BLOCKCHAIN_PACKAGE = "packages/blockchain"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def steps_for(
    options: ProjectOptions,
    target_dir: str | None = None,
    renderer: TemplateRenderer | None = None,
) -> tuple[GenerationStep, ...]:
    """Return the ordered generation steps for *options*.

    Args:
        options: Resolved project options.
        target_dir: Project root relative to the base directory.  Defaults to
            ``options.project_name``.
        renderer: Template renderer; the packaged templates by default.

    Raises:
        RegistryError: If the sequence would break a path guarantee.
    """
    root = _normalise(target_dir if target_dir is not None else options.project_name)
    builder = _TOOLING_BUILDERS[options.blockchain_tooling]
    steps: list[GenerationStep] = [MakeDirectory(path=root, recursive=False)]
    steps.extend(builder(options, root, renderer or default_renderer()))
    result = tuple(steps)
    validate_steps(result, root)
    return result


def framework_steps(
    options: ProjectOptions,
    site_dir: str,
    renderer: TemplateRenderer,
    *,
    workspace_root: bool = True,
) -> list[GenerationStep]:
    """Return the framework-specific steps that build the site in *site_dir*.

    *workspace_root* is ``False`` when the site is a package inside a
    monorepo whose root already carries the workspace manifest.
    """
    builder = _FRAMEWORK_BUILDERS[options.framework]
    return builder(options, site_dir, renderer, workspace_root)


def validate_steps(steps: tuple[GenerationStep, ...], target_dir: str) -> None:
    """Check the registry guarantees for a step sequence.

    * every path and command working directory lies inside *target_dir*
      (command working directories may also be its parent, where the
      project directory itself is passed to the scaffolding tool);
    * every ``RemovePath`` lies below a directory made earlier in the
      sequence.

    Raises:
        RegistryError: On the first violation.
    """
    root = _normalise(target_dir)
    created: list[str] = []
    for index, step in enumerate(steps):
        if isinstance(step, RunCommand):
            cwd = _normalise(step.cwd)
            if not (_is_within(cwd, root) or cwd == _parent(root)):
                raise RegistryError(
                    f"Step {index + 1} runs outside {root}: {step.describe()}"
                )
            continue

        path = _normalise(step.path)
        if not _is_within(path, root):
            raise RegistryError(f"Step {index + 1} targets a path outside {root}: {path}")

        if isinstance(step, MakeDirectory):
            created.append(path)
        elif isinstance(step, RemovePath):
            if not any(path != d and _is_within(path, d) for d in created):
                raise RegistryError(
                    f"Step {index + 1} removes {path}, which is not inside a "
                    "directory created earlier in this run"
                )


# ---------------------------------------------------------------------------
# Framework builders
# ---------------------------------------------------------------------------

def _nextjs_steps(
    options: ProjectOptions,
    site_dir: str,
    renderer: TemplateRenderer,
    workspace_root: bool,
) -> list[GenerationStep]:
    parent, name = _split(site_dir)
    steps: list[GenerationStep] = [
        RunCommand(
            command=(
                "npx", "create-next-app", name,
                "--ts", "--tailwind", "--eslint", "--app", "--src-dir",
                "--skip-install", "--import-alias", "@/*",
                PACKAGE_MANAGER_FLAGS[options.package_manager],
                "--turbopack",
            ),
            cwd=parent,
        ),
        MergeJSON(
            path=_join(site_dir, "package.json"),
            key="dependencies",
            patch=dict(NEXTJS_DEPENDENCIES),
        ),
        MergeJSON(
            path=_join(site_dir, "tsconfig.json"),
            key="compilerOptions",
            patch={"paths": {k: list(v) for k, v in TSCONFIG_PATHS.items()}},
        ),
    ]
    if workspace_root:
        steps.extend(_workspace_manifest(options, site_dir, ["."], renderer))

    steps.append(MakeDirectory(path=_join(site_dir, "src/components/ui"), recursive=True))
    context = dict(NEXTJS_TEMPLATE_CONTEXT)
    for directory, relative in NEXTJS_FILES:
        if directory is not None:
            steps.append(MakeDirectory(path=_join(site_dir, directory), recursive=True))
        steps.append(
            WriteFile(
                path=_join(site_dir, relative),
                content=renderer.render(f"nextjs/{relative}.j2", context),
            )
        )
    return steps


def _react_steps(
    options: ProjectOptions,
    site_dir: str,
    renderer: TemplateRenderer,
    workspace_root: bool,
) -> list[GenerationStep]:
    template = TEMPLATE_REPOSITORIES["react-web3-starter"]
    steps: list[GenerationStep] = [
        RunCommand(
            command=("git", "clone", "--depth", "1", template.repo_url, site_dir),
            cwd=".",
        ),
        RemovePath(path=_join(site_dir, ".git"), recursive=True),
        MergeJSON(
            path=_join(site_dir, "package.json"),
            key=None,
            patch={"name": options.project_name},
        ),
    ]
    if workspace_root:
        steps.extend(_workspace_manifest(options, site_dir, ["."], renderer))
    return steps


_FrameworkBuilder = Callable[
    [ProjectOptions, str, TemplateRenderer, bool], list[GenerationStep]
]

_FRAMEWORK_BUILDERS: MappingProxyType[Framework, _FrameworkBuilder] = MappingProxyType({
    Framework.NEXTJS: _nextjs_steps,
    Framework.REACT: _react_steps,
})


# ---------------------------------------------------------------------------
# Tooling builders
# ---------------------------------------------------------------------------

def _standalone_steps(
    options: ProjectOptions, root: str, renderer: TemplateRenderer
) -> list[GenerationStep]:
    return framework_steps(options, root, renderer)


def _hardhat_steps(
    options: ProjectOptions, root: str, renderer: TemplateRenderer
) -> list[GenerationStep]:
    template = TEMPLATE_REPOSITORIES["hardhat-template"]
    steps = _monorepo_prelude(options, root, renderer)
    steps.append(
        RunCommand(
            command=("git", "clone", template.repo_url, _join(root, BLOCKCHAIN_PACKAGE)),
            cwd=".",
        )
    )
    steps.extend(
        framework_steps(options, _join(root, SITE_PACKAGE), renderer, workspace_root=False)
    )
    return steps


def _foundry_steps(
    options: ProjectOptions, root: str, renderer: TemplateRenderer
) -> list[GenerationStep]:
    steps = _monorepo_prelude(options, root, renderer)
    steps.extend(
        framework_steps(options, _join(root, SITE_PACKAGE), renderer, workspace_root=False)
    )
    steps.append(
        RunCommand(
            command=("forge", "init", ".", "--no-commit"),
            cwd=_join(root, BLOCKCHAIN_PACKAGE),
        )
    )
    return steps


def _monorepo_prelude(
    options: ProjectOptions, root: str, renderer: TemplateRenderer
) -> list[GenerationStep]:
    """Workspace layout shared by the HardHat and Foundry projects.

    ``npm init -w`` creates the package directories with placeholder
    manifests and links them into ``node_modules``; both are removed so the
    clone/scaffold steps start from empty package directories.
    """
    steps = _workspace_manifest(options, root, [f"{MONOREPO_PACKAGES}/*"], renderer)
    steps.extend([
        WriteFile(path=_join(root, ".gitignore"), content=renderer.render("monorepo/gitignore.j2")),
        RunCommand(command=("npm", "init", "-y"), cwd=root),
        RunCommand(command=("npm", "init", "-w", f"./{BLOCKCHAIN_PACKAGE}", "-y"), cwd=root),
        RunCommand(command=("npm", "init", "-w", f"./{SITE_PACKAGE}", "-y"), cwd=root),
        RemovePath(path=_join(root, BLOCKCHAIN_PACKAGE, "package.json")),
        RemovePath(path=_join(root, SITE_PACKAGE, "package.json")),
        RemovePath(path=_join(root, "node_modules"), recursive=True),
    ])
    return steps


_ToolingBuilder = Callable[[ProjectOptions, str, TemplateRenderer], list[GenerationStep]]

_TOOLING_BUILDERS: MappingProxyType[BlockchainTooling, _ToolingBuilder] = MappingProxyType({
    BlockchainTooling.NONE: _standalone_steps,
    BlockchainTooling.HARDHAT: _hardhat_steps,
    BlockchainTooling.FOUNDRY: _foundry_steps,
})


def _workspace_manifest(
    options: ProjectOptions,
    directory: str,
    packages: list[str],
    renderer: TemplateRenderer,
) -> list[GenerationStep]:
    """Return the ``pnpm-workspace.yaml`` write for pnpm projects, else nothing."""
    if options.package_manager is not PackageManager.PNPM:
        return []
    return [
        WriteFile(
            path=_join(directory, "pnpm-workspace.yaml"),
            content=renderer.render(
                "common/pnpm-workspace.yaml.j2", {"workspace_packages": packages}
            ),
        )
    ]


# ---------------------------------------------------------------------------
# Path helpers (POSIX, relative to the base directory)
# ---------------------------------------------------------------------------

def _normalise(path: str) -> str:
    normalised = posixpath.normpath(path.replace("\\", "/"))
    if posixpath.isabs(normalised) or normalised == ".." or normalised.startswith("../"):
        raise RegistryError(f"Path must be relative to the base directory: {path}")
    return normalised


def _join(*parts: str) -> str:
    return posixpath.normpath(posixpath.join(*parts))


def _split(path: str) -> tuple[str, str]:
    parent, name = posixpath.split(path)
    return parent or ".", name


def _parent(path: str) -> str:
    return _split(path)[0]


def _is_within(path: str, root: str) -> bool:
    if root == ".":
        return True
    return path == root or path.startswith(root + "/")
