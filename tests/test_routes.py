"""Tests for page discovery from Angular routing files."""

from __future__ import annotations

from pathlib import Path

import pytest

from ngaudit.repo_scanner import load_ignore_rules
from ngaudit.routes import discover_routes, find_routing_files, join_route_paths, parse_routes
from tests._fixtures.project_builder import ProjectBuilder

APP_ROUTES = """
    import { Routes } from '@angular/router';
    import { HomeComponent } from './home/home.component';

    export const routes: Routes = [
      { path: '', component: HomeComponent },
      {
        path: 'admin',
        component: AdminComponent,
        children: [
          { path: 'users/:id', loadComponent: () => import('./users/users.component').then(m => m.UsersComponent) },
        ],
      },
      { path: 'legacy', loadComponent: () => import('./legacy/legacy').then((m) => m.LegacyPage) },
      { path: '**', redirectTo: '' },
      { path: 'home', component: HomeComponent },
      { path: 'missing', component: MissingComponent },
    ];
"""


@pytest.fixture
def routed_project(project_builder: ProjectBuilder) -> ProjectBuilder:
    project_builder.component("home", "app-home", "<h1>Home</h1>\n", styles=["h1 { color: #222; }\n"])
    project_builder.component("admin", "app-admin", "<router-outlet></router-outlet>\n")
    project_builder.component("users", "app-users", "<ul></ul>\n")
    project_builder.write(
        {
            "src/app/app.routes.ts": APP_ROUTES,
            "src/app/legacy/legacy.html": "<p>legacy</p>\n",
            "src/app/legacy/legacy.scss": "p {}\n",
        }
    )
    return project_builder


@pytest.mark.parametrize(
    ("parent", "child", "expected"),
    [
        ("", "", "/"),
        ("", "home", "/home"),
        ("/admin", "", "/admin"),
        ("/admin", "users/:id", "/admin/users/:id"),
        ("/", "//docs/", "/docs"),
    ],
)
def test_join_route_paths(parent: str, child: str, expected: str) -> None:
    assert join_route_paths(parent, child) == expected


def test_parse_standalone_routes_flattens_children(routed_project: ProjectBuilder) -> None:
    routing_file = routed_project.path("src/app/app.routes.ts")

    routes = parse_routes(routing_file.read_text(encoding="utf-8"), routing_file)

    assert [route.path for route in routes] == ["/", "/admin", "/admin/users/:id", "/legacy", "/home", "/missing"]
    assert routes[0].component == "HomeComponent"
    assert routes[0].line == 5
    assert routes[1].component == "AdminComponent"
    assert routes[2].import_path == "./users/users.component"
    assert routes[2].export_name == "UsersComponent"
    assert routes[2].component is None
    assert routes[3].component_name == "LegacyPage"


def test_parse_router_module_routes(tmp_path: Path) -> None:
    text = """
@NgModule({
  imports: [RouterModule.forChild([{ path: 'settings', component: SettingsComponent }])],
  exports: [RouterModule],
})
export class SettingsRoutingModule {}
"""

    routes = parse_routes(text, tmp_path / "settings-routing.module.ts")

    assert [(route.path, route.component) for route in routes] == [("/settings", "SettingsComponent")]


def test_parse_routes_without_routes_array(tmp_path: Path) -> None:
    assert parse_routes("export const x = [1, 2];\n", tmp_path / "x.routes.ts") == []
    assert parse_routes("const routes: Routes = [{ path: 'a'", tmp_path / "x.routes.ts") == []


def test_discover_routes_maps_routes_to_templates(routed_project: ProjectBuilder) -> None:
    discovery = discover_routes(routed_project.root, routed_project.registry())

    assert discovery.routing_files == [routed_project.path("src/app/app.routes.ts")]
    assert [entry.route.path for entry in discovery.entries] == ["/", "/admin", "/admin/users/:id", "/legacy"]

    home = discovery.entries[0]
    assert home.template == routed_project.path("src/app/home/home.component.html")
    assert home.styles == routed_project.path("src/app/home/home.component.scss")
    assert home.selector == "app-home"

    assert discovery.entries[2].selector == "app-users"

    legacy = discovery.entries[3]
    assert legacy.template == routed_project.path("src/app/legacy/legacy.html")
    assert legacy.styles is not None and legacy.styles.name == "legacy.scss"
    assert legacy.selector is None

    assert len(discovery.warnings) == 1
    assert "route /missing (MissingComponent) has no template" in discovery.warnings[0]


def test_routing_files_honour_ignore_rules(routed_project: ProjectBuilder) -> None:
    routed_project.write({"legacy-app/app-routing.module.ts": "const routes: Routes = [];\n"})
    root = routed_project.path()

    found = find_routing_files(root, load_ignore_rules(root))
    excluded = find_routing_files(root, load_ignore_rules(root, ["legacy-app/"]))

    assert [path.name for path in found] == ["app-routing.module.ts", "app.routes.ts"]
    assert [path.name for path in excluded] == ["app.routes.ts"]


def test_discover_routes_on_missing_root(tmp_path: Path, project_builder: ProjectBuilder) -> None:
    discovery = discover_routes(tmp_path / "missing", project_builder.registry())

    assert discovery.routing_files == []
    assert discovery.entries == []
