# mlmtool - test fixtures
# Copyright (C) 2025  mlmtool authors
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.

"""Shared fixtures: an in-memory management server and a recording runner."""

import json
import logging
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import httpx
import pydantic
import pytest

from mlmtool.credentials import Credentials
from mlmtool.releases.catalog import BASE_CHANNEL_EXTRA, CATALOG
from mlmtool.runner import LocalIOError
from mlmtool.suma.api import SumaAPI
from mlmtool.suma.client import SESSION_COOKIE, SumaClient
from mlmtool.suma.session import Session

HOST = "suma.example.com"
USER = "admin"
PASSWORD = "secret"
TOKEN = "0123456789abcdef"

MUTATING_ENDPOINTS = frozenset(
    (
        "channel/software/create",
        "channel/software/createRepo",
        "channel/software/associateRepo",
        "channel/software/syncRepo",
        "contentmanagement/createProject",
        "contentmanagement/attachSource",
        "contentmanagement/detachSource",
        "contentmanagement/createFilter",
        "contentmanagement/attachFilter",
        "contentmanagement/createEnvironment",
        "contentmanagement/buildProject",
        "contentmanagement/promoteProject",
        "kickstart/tree/create",
        "kickstart/importRawFile",
        "kickstart/deleteProfile",
        "kickstart/profile/setVariables",
        "activationkey/create",
        "activationkey/addChildChannels",
        "activationkey/addServerGroups",
        "activationkey/removePackages",
        "activationkey/delete",
    )
)

API_PREFIX = "/rhn/manager/api/"


def _ok(result: Any) -> httpx.Response:
    return httpx.Response(200, json={"success": True, "result": result})


def _rejected(*messages: str) -> httpx.Response:
    return httpx.Response(
        200, json={"success": False, "messages": list(messages)}
    )


class FakeSumaServer:
    """Minimal in-memory management server, served through `MockTransport`."""

    def __init__(self, host: str = HOST) -> None:
        self.host = host
        self.token = TOKEN
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

        # channel label -> parent label, '' for base channels
        self.channels: dict[str, str] = {}
        self.repos: dict[str, str] = {}
        self.projects: dict[str, dict[str, Any]] = {}
        self.sources: dict[str, list[str]] = {}
        self.environments: dict[tuple[str, str], dict[str, Any]] = {}
        self.filters: list[dict[str, Any]] = []
        self.attached_filters: dict[str, list[int]] = {}
        self.trees: dict[str, dict[str, Any]] = {}
        self.profiles: dict[str, dict[str, Any]] = {}
        self.profile_variables: dict[str, dict[str, str]] = {}
        self.activation_keys: dict[str, dict[str, Any]] = {}
        self.system_groups: dict[str, int] = {}
        # packages the server adds to every new activation key
        self.default_key_packages: list[dict[str, str]] = [
            {"name": "salt-minion", "arch": "x86_64"}
        ]

        self.logged_in = False
        self.logged_out = False

        # endpoint -> messages to reject with
        self.reject: dict[str, list[str]] = {}
        # endpoints answering with a bare HTTP 503
        self.unavailable: set[str] = set()
        self.reject_kernel_options = False

        self._routes: dict[str, Callable[[dict[str, Any]], httpx.Response]] = {
            "auth/logout": self._logout,
            "channel/listSoftwareChannels": self._list_software_channels,
            "channel/software/listChildren": self._list_children,
            "channel/software/isExisting": self._is_existing,
            "channel/software/create": self._create_channel,
            "channel/software/createRepo": self._create_repo,
            "channel/software/associateRepo": self._associate_repo,
            "channel/software/syncRepo": lambda _: _ok(1),
            "contentmanagement/listProjects": self._list_projects,
            "contentmanagement/lookupProject": self._lookup_project,
            "contentmanagement/createProject": self._create_project,
            "contentmanagement/attachSource": self._attach_source,
            "contentmanagement/detachSource": self._detach_source,
            "contentmanagement/listFilters": lambda _: _ok(self.filters),
            "contentmanagement/createFilter": self._create_filter,
            "contentmanagement/attachFilter": self._attach_filter,
            "contentmanagement/createEnvironment": self._create_environment,
            "contentmanagement/lookupEnvironment": self._lookup_environment,
            "contentmanagement/buildProject": self._build_project,
            "contentmanagement/promoteProject": self._promote_project,
            "kickstart/tree/getDetails": self._tree_details,
            "kickstart/tree/create": self._create_tree,
            "kickstart/listKickstarts": lambda _: _ok(list(self.profiles.values())),
            "kickstart/deleteProfile": self._delete_profile,
            "kickstart/importRawFile": self._import_raw_file,
            "kickstart/profile/setVariables": self._set_variables,
            "activationkey/listActivationKeys": lambda _: _ok(
                list(self.activation_keys.values())
            ),
            "activationkey/create": self._create_key,
            "activationkey/getDetails": self._key_details,
            "activationkey/addChildChannels": self._add_key_children,
            "activationkey/addServerGroups": self._add_key_groups,
            "activationkey/removePackages": self._remove_key_packages,
            "activationkey/delete": self._delete_key,
            "systemgroup/getDetails": self._group_details,
        }

    # helpers for tests

    def endpoints(self) -> list[str]:
        return [ep for _, ep, _ in self.calls]

    def mutations(self) -> list[str]:
        return [ep for ep in self.endpoints() if ep in MUTATING_ENDPOINTS]

    def calls_to(self, ep: str) -> list[dict[str, Any]]:
        return [args for _, e, args in self.calls if e == ep]

    def add_channel(self, label: str, parent: str = "") -> None:
        self.channels[label] = parent

    def add_product(self, product_code: str) -> None:
        """Add the product's parent channel and default children."""
        profile = CATALOG[product_code]
        self.add_channel(profile.parent_channel_label)
        for child in profile.default_child_channels:
            self.add_channel(child, profile.parent_channel_label)

    def add_project(self, label: str) -> None:
        self.projects[label] = {"label": label, "name": label, "id": 1}

    # transport

    def handler(self, request: httpx.Request) -> httpx.Response:
        ep = request.url.path.removeprefix(API_PREFIX)
        if request.method == "GET":
            args: dict[str, Any] = dict(request.url.params)
        else:
            args = json.loads(request.content) if request.content else {}
        self.calls.append((request.method, ep, args))

        if ep in self.unavailable:
            return httpx.Response(503, text="Service Unavailable")
        if ep in self.reject:
            return _rejected(*self.reject[ep])

        if ep == "auth/login":
            return self._login(args)

        if f"{SESSION_COOKIE}={self.token}" not in request.headers.get("cookie", ""):
            return httpx.Response(
                401, json={"success": False, "message": "Authentication error"}
            )

        route = self._routes.get(ep)
        if route is None:
            return httpx.Response(404, text="not found")
        return route(args)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    # endpoints

    def _login(self, args: dict[str, Any]) -> httpx.Response:
        if args.get("login") != USER or args.get("password") != PASSWORD:
            return _rejected("Either the password or username is incorrect.")
        self.logged_in = True
        return httpx.Response(
            200,
            json={"success": True, "messages": ["logged in"]},
            headers=[
                ("Set-Cookie", f"{SESSION_COOKIE}=; Max-Age=0; Path=/"),
                ("Set-Cookie", f"{SESSION_COOKIE}={self.token}; Path=/; HttpOnly"),
            ],
        )

    def _logout(self, _: dict[str, Any]) -> httpx.Response:
        self.logged_out = True
        return _ok(1)

    def _list_software_channels(self, _: dict[str, Any]) -> httpx.Response:
        return _ok(
            [
                {"label": label, "name": label, "parent_label": parent}
                for label, parent in self.channels.items()
            ]
        )

    def _list_children(self, args: dict[str, Any]) -> httpx.Response:
        parent = args["channelLabel"]
        if parent not in self.channels:
            return _rejected(f"No such channel: {parent}")
        return _ok(
            [
                {"label": label, "name": label}
                for label, p in self.channels.items()
                if p == parent
            ]
        )

    def _is_existing(self, args: dict[str, Any]) -> httpx.Response:
        return _ok(args["channelLabel"] in self.channels)

    def _create_channel(self, args: dict[str, Any]) -> httpx.Response:
        label = args["label"]
        if label in self.channels:
            return _rejected(f"channel '{label}' already exists")
        self.channels[label] = args["parentLabel"]
        return _ok(1)

    def _create_repo(self, args: dict[str, Any]) -> httpx.Response:
        label = args["label"]
        if label in self.repos:
            return _rejected(f"repository '{label}' already exists")
        self.repos[label] = args["url"]
        return _ok(
            {"id": len(self.repos), "label": label, "type": args["type"],
             "sourceUrl": args["url"]}
        )

    def _associate_repo(self, args: dict[str, Any]) -> httpx.Response:
        return _ok({"label": args["channelLabel"], "name": args["channelLabel"]})

    def _list_projects(self, _: dict[str, Any]) -> httpx.Response:
        return _ok(list(self.projects.values()))

    def _lookup_project(self, args: dict[str, Any]) -> httpx.Response:
        label = args["projectLabel"]
        if label not in self.projects:
            return _rejected(f"Content Project with label {label} not found")
        return _ok(self.projects[label])

    def _create_project(self, args: dict[str, Any]) -> httpx.Response:
        label = args["projectLabel"]
        if label in self.projects:
            return _rejected(f"Content Project with label {label} already exists")
        self.projects[label] = {
            "label": label,
            "name": args["name"],
            "description": args["description"],
            "id": len(self.projects) + 1,
        }
        self.sources[label] = []
        return _ok(self.projects[label])

    def _attach_source(self, args: dict[str, Any]) -> httpx.Response:
        project = args["projectLabel"]
        self.sources.setdefault(project, []).append(args["sourceLabel"])
        return _ok(
            {
                "contentProjectLabel": project,
                "channelLabel": args["sourceLabel"],
                "type": args["sourceType"],
                "state": "ATTACHED",
            }
        )

    def _detach_source(self, args: dict[str, Any]) -> httpx.Response:
        sources = self.sources.setdefault(args["projectLabel"], [])
        if args["sourceLabel"] in sources:
            sources.remove(args["sourceLabel"])
        return _ok(1)

    def _create_filter(self, args: dict[str, Any]) -> httpx.Response:
        f = {
            "id": len(self.filters) + 1,
            "name": args["name"],
            "rule": args["rule"],
            "entityType": args["entityType"],
            "criteria": args["criteria"],
        }
        self.filters.append(f)
        return _ok(f)

    def _attach_filter(self, args: dict[str, Any]) -> httpx.Response:
        project = args["projectLabel"]
        self.attached_filters.setdefault(project, []).append(args["filterId"])
        for f in self.filters:
            if f["id"] == args["filterId"]:
                return _ok(f)
        return _rejected(f"Filter not found: {args['filterId']}")

    def _create_environment(self, args: dict[str, Any]) -> httpx.Response:
        key = (args["projectLabel"], args["envLabel"])
        env = {
            "label": args["envLabel"],
            "name": args["name"],
            "description": args["description"],
            "status": "new",
            "contentProjectLabel": args["projectLabel"],
            "previousEnvironmentLabel": args["predecessorLabel"] or None,
        }
        self.environments[key] = env
        return _ok(env)

    def _lookup_environment(self, args: dict[str, Any]) -> httpx.Response:
        key = (args["projectLabel"], args["envLabel"])
        if key not in self.environments:
            return _rejected(f"Environment {args['envLabel']} not found")
        return _ok(self.environments[key])

    def _build_project(self, args: dict[str, Any]) -> httpx.Response:
        if args["projectLabel"] not in self.projects:
            return _rejected(f"Project not found: {args['projectLabel']}")
        return _ok(1)

    def _promote_project(self, _: dict[str, Any]) -> httpx.Response:
        return _ok(2)

    def _tree_details(self, args: dict[str, Any]) -> httpx.Response:
        label = args["treeLabel"]
        if label not in self.trees:
            return _rejected(f"No Kickstart Tree found with label: {label}")
        return _ok(self.trees[label])

    def _create_tree(self, args: dict[str, Any]) -> httpx.Response:
        if "kernelOptions" in args and self.reject_kernel_options:
            return _rejected("kernel options not supported")
        label = args["treeLabel"]
        self.trees[label] = {
            "label": label,
            "abs_path": args["basePath"],
            "channel_id": 42,
        }
        return _ok(1)

    def add_profile(self, label: str) -> None:
        self.profiles[label] = {
            "label": label,
            "name": label,
            "tree_label": "sles15sp5-autoyast",
            "active": True,
        }

    def _delete_profile(self, args: dict[str, Any]) -> httpx.Response:
        label = args["ksLabel"]
        if label not in self.profiles:
            return _rejected(f"No Kickstart Profile found with label: {label}")
        del self.profiles[label]
        return _ok(1)

    def _import_raw_file(self, args: dict[str, Any]) -> httpx.Response:
        label = args["profileLabel"]
        if label in self.profiles:
            return _rejected(f"Kickstart profile '{label}' already exists")
        self.profiles[label] = {
            "label": label,
            "name": label,
            "tree_label": args["kickstartableTreeLabel"],
            "active": True,
        }
        return _ok(1)

    def _set_variables(self, args: dict[str, Any]) -> httpx.Response:
        label = args["ksLabel"]
        if label not in self.profiles:
            return _rejected(f"No Kickstart Profile found with label: {label}")
        self.profile_variables[label] = args["variables"]
        return _ok(1)

    def add_activation_key(self, key: str, base: str = "") -> None:
        self.activation_keys[key] = {
            "key": key,
            "description": key,
            "base_channel_label": base,
            "child_channel_labels": [],
            "entitlements": [],
            "server_group_ids": [],
            "packages": [],
            "universal_default": False,
        }

    def _key_or_reject(
        self, key: str
    ) -> tuple[dict[str, Any] | None, httpx.Response | None]:
        if key not in self.activation_keys:
            return (None, _rejected(f"Could not find activation key: {key}"))
        return (self.activation_keys[key], None)

    def _create_key(self, args: dict[str, Any]) -> httpx.Response:
        key = f"1-{args['key']}"
        if key in self.activation_keys:
            return _rejected(f"activation key '{key}' already exists")
        self.add_activation_key(key, args["baseChannelLabel"])
        self.activation_keys[key].update(
            {
                "description": args["description"],
                "entitlements": args["entitlements"],
                "packages": list(self.default_key_packages),
            }
        )
        return _ok(key)

    def _key_details(self, args: dict[str, Any]) -> httpx.Response:
        details, rejected = self._key_or_reject(args["key"])
        return rejected or _ok(details)

    def _add_key_children(self, args: dict[str, Any]) -> httpx.Response:
        for key in args["keys"]:
            details, rejected = self._key_or_reject(key)
            if rejected:
                return rejected
            assert details is not None
            details["child_channel_labels"].extend(args["childChannelLabels"])
        return _ok(1)

    def _add_key_groups(self, args: dict[str, Any]) -> httpx.Response:
        for key in args["keys"]:
            details, rejected = self._key_or_reject(key)
            if rejected:
                return rejected
            assert details is not None
            details["server_group_ids"].extend(args["serverGroupIds"])
        return _ok(1)

    def _remove_key_packages(self, args: dict[str, Any]) -> httpx.Response:
        details, rejected = self._key_or_reject(args["key"])
        if rejected:
            return rejected
        assert details is not None
        names = {p["name"] for p in args["packages"]}
        details["packages"] = [p for p in details["packages"] if p["name"] not in names]
        return _ok(1)

    def _delete_key(self, args: dict[str, Any]) -> httpx.Response:
        _, rejected = self._key_or_reject(args["key"])
        if rejected:
            return rejected
        del self.activation_keys[args["key"]]
        return _ok(1)

    def _group_details(self, args: dict[str, Any]) -> httpx.Response:
        name = args["systemGroupName"]
        if name not in self.system_groups:
            return _rejected(f"Unable to locate or access server group: {name}")
        return _ok(
            {"id": self.system_groups[name], "name": name, "system_count": 0}
        )


class FakeRunner:
    """Records local operations, failing the ones asked to fail."""

    def __init__(self) -> None:
        self.dirs: list[Path] = []
        self.commands: list[list[str]] = []
        self.fail_commands: set[str] = set()
        self.fail_args: set[str] = set()
        self.fail_mkdir = False

    def mkdir(self, path: Path) -> None:
        if self.fail_mkdir:
            raise LocalIOError(f"unable to create directory '{path}'")
        self.dirs.append(path)

    def run(self, cmd: str, args: list[str]) -> list[str]:
        self.commands.append([cmd, *args])
        if cmd in self.fail_commands or self.fail_args.intersection(args):
            raise LocalIOError(f"error running '{cmd}'")
        return []


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("tests.mlmtool")


@pytest.fixture
def server() -> FakeSumaServer:
    return FakeSumaServer()


@pytest.fixture
def mi52_server(server: FakeSumaServer) -> FakeSumaServer:
    """A server carrying the 'mi52' product channels, and nothing else."""
    server.add_product("mi52")
    return server


@pytest.fixture
def client(
    logger: logging.Logger, server: FakeSumaServer
) -> Iterator[SumaClient]:
    with SumaClient(
        logger, server.host, transport=server.transport(), retry_delay=0
    ) as c:
        yield c


@pytest.fixture
def api(logger: logging.Logger, client: SumaClient) -> SumaAPI:
    return SumaAPI(logger, client)


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(host=HOST, user=USER, password=pydantic.SecretStr(PASSWORD))


@pytest.fixture
def session(server: FakeSumaServer) -> Session:
    """A live session, as if logged in to `server`."""
    server.logged_in = True
    return Session(token=pydantic.SecretStr(TOKEN), host=server.host)


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


__all__ = ["BASE_CHANNEL_EXTRA", "FakeRunner", "FakeSumaServer"]
