"""npm dependencies and the ``package.json`` manifest for a project.

The version ranges are fixed per stack choice; nothing is looked up on a
registry.  The same resolution feeds the preview report and the manifest
the scaffolder writes when the template did not render its own.
"""

from __future__ import annotations

import json
from typing import Any

from stackforge.models import (
    BackendFramework,
    Caching,
    Database,
    FrontendFramework,
    ProjectConfig,
    StateManagement,
    Styling,
)
from stackforge.utils import slugify

FRONTEND_PACKAGES: dict[FrontendFramework, dict[str, str]] = {
    FrontendFramework.NEXT: {"next": "^14.0.0", "react": "^18.2.0", "react-dom": "^18.2.0"},
    FrontendFramework.REACT: {"react": "^18.2.0", "react-dom": "^18.2.0"},
    FrontendFramework.VUE: {"vue": "^3.3.0"},
    FrontendFramework.ANGULAR: {
        "@angular/core": "^17.0.0",
        "@angular/common": "^17.0.0",
        "rxjs": "^7.8.0",
    },
}

STYLING_PACKAGES: dict[Styling, dict[str, str]] = {
    Styling.TAILWIND: {"tailwindcss": "^3.3.0", "@tailwindcss/forms": "^0.5.0"},
    Styling.SCSS: {"sass": "^1.69.0"},
    Styling.STYLED_COMPONENTS: {"styled-components": "^6.1.0"},
}

STATE_PACKAGES: dict[StateManagement, dict[str, str]] = {
    StateManagement.REDUX: {"@reduxjs/toolkit": "^2.0.0", "react-redux": "^9.0.0"},
    StateManagement.MOBX: {"mobx": "^6.12.0", "mobx-react-lite": "^4.0.0"},
    StateManagement.ZUSTAND: {"zustand": "^4.4.0"},
}

BACKEND_PACKAGES: dict[BackendFramework, dict[str, str]] = {
    BackendFramework.EXPRESS: {"express": "^4.18.0", "cors": "^2.8.5", "helmet": "^7.1.0"},
    BackendFramework.NEST: {"@nestjs/core": "^10.0.0", "@nestjs/common": "^10.0.0"},
    BackendFramework.FASTIFY: {"fastify": "^4.24.0"},
    BackendFramework.KOA: {"koa": "^2.14.0"},
}

DATABASE_PACKAGES: dict[Database, dict[str, str]] = {
    Database.POSTGRESQL: {"pg": "^8.11.0"},
    Database.MONGODB: {"mongoose": "^8.0.0"},
    Database.MYSQL: {"mysql2": "^3.6.0"},
}

CACHING_PACKAGES: dict[Caching, dict[str, str]] = {
    Caching.REDIS: {"redis": "^4.6.0"},
    Caching.MEMCACHED: {"memjs": "^1.3.0"},
}

DEV_DEPENDENCIES: dict[str, str] = {
    "@types/node": "^20.0.0",
    "@typescript-eslint/eslint-plugin": "^6.0.0",
    "@typescript-eslint/parser": "^6.0.0",
    "eslint": "^8.0.0",
    "eslint-config-prettier": "^9.0.0",
    "prettier": "^3.0.0",
    "typescript": "^5.0.0",
    "jest": "^29.0.0",
    "@types/jest": "^29.0.0",
    "ts-jest": "^29.0.0",
}

# Extra dev packages for React based frontends.
_REACT_DEV_DEPENDENCIES: dict[str, str] = {
    "@types/react": "^18.2.0",
    "@types/react-dom": "^18.2.0",
}

_NEXT_SCRIPTS = {"dev": "next dev", "build": "next build", "start": "next start"}
_NODE_SCRIPTS = {"dev": "node --watch src/index.js", "start": "node src/index.js"}


def resolve_dependencies(config: ProjectConfig) -> dict[str, str]:
    """Runtime packages for *config*, as ``{package: version range}``."""
    deps: dict[str, str] = {}
    frontend = config.tech_stack.frontend
    backend = config.tech_stack.backend

    if frontend is not None:
        deps.update(FRONTEND_PACKAGES.get(frontend.framework, {}))
        if frontend.styling is not None:
            deps.update(STYLING_PACKAGES.get(frontend.styling, {}))
        if frontend.state_management is not None:
            deps.update(STATE_PACKAGES.get(frontend.state_management, {}))

    if backend is not None:
        deps.update(BACKEND_PACKAGES.get(backend.framework, {}))
        if backend.database is not None:
            deps.update(DATABASE_PACKAGES.get(backend.database, {}))
        if backend.caching is not None:
            deps.update(CACHING_PACKAGES.get(backend.caching, {}))
    return deps


def resolve_dev_dependencies(config: ProjectConfig) -> dict[str, str]:
    dev = dict(DEV_DEPENDENCIES)
    frontend = config.tech_stack.frontend
    if frontend is not None and frontend.framework in (FrontendFramework.NEXT, FrontendFramework.REACT):
        dev.update(_REACT_DEV_DEPENDENCIES)
    if frontend is not None and frontend.framework == FrontendFramework.NEXT:
        dev["eslint-config-next"] = "^14.0.0"
    return dev


def build_package_manifest(config: ProjectConfig) -> dict[str, Any]:
    """The ``package.json`` document for *config*."""
    frontend = config.tech_stack.frontend
    if frontend is not None and frontend.framework == FrontendFramework.NEXT:
        scripts = dict(_NEXT_SCRIPTS)
    else:
        scripts = dict(_NODE_SCRIPTS)
    scripts.update({"test": "jest", "lint": "eslint ."})

    return {
        "name": slugify(config.name) or config.name,
        "version": config.version,
        "description": config.description,
        "private": True,
        "scripts": scripts,
        "dependencies": resolve_dependencies(config),
        "devDependencies": resolve_dev_dependencies(config),
    }


def render_package_json(config: ProjectConfig) -> str:
    return json.dumps(build_package_manifest(config), indent=2) + "\n"
