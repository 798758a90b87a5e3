"""
Built-in migrations for legacy clients.
catalog: page/rootId request fields -> cursor/catalogId, nextCursor mirrored back as nextPage.
addon: clients older than 1.0.0 expect type="addon" and the action list under "resources".
"""
from typing import Any

from addon_engine.migrations.context import MigrationAdapter, MigrationContext

LEGACY_ADDON_VERSION = "1.0.0"


class CatalogMigration(MigrationAdapter):
    name = "catalog"

    def request(self, ctx: MigrationContext, input: Any) -> Any:
        if isinstance(input, dict) and ("page" in input or "rootId" in input):
            input = dict(input)
            if "page" in input:
                page = input.pop("page")
                input.setdefault("cursor", page)
                ctx.data["legacy_page"] = True
            if "rootId" in input:
                root_id = input.pop("rootId")
                input.setdefault("catalogId", root_id)
        return ctx.validator.request(input)

    def response(self, ctx: MigrationContext, input: Any, output: Any) -> Any:
        output = ctx.validator.response(output)
        if ctx.data.get("legacy_page") and isinstance(output, dict) and "nextPage" not in output:
            output = {**output, "nextPage": output.get("nextCursor")}
        return output


class AddonMigration(MigrationAdapter):
    name = "addon"

    def response(self, ctx: MigrationContext, input: Any, output: Any) -> Any:
        output = ctx.validator.response(output)
        if not ctx.client_older_than(LEGACY_ADDON_VERSION) or not isinstance(output, dict):
            return output
        out = dict(output)
        out.setdefault("type", "addon")
        out.setdefault("resources", list(out.get("actions") or []))
        return out
