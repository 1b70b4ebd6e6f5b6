from __future__ import annotations

from amenhotep.models import ContractSchema, EventDecl, TypeKind, TypeRef
from amenhotep.targets.base import contract_dir


def graphql_type(type_ref: TypeRef) -> str:
    if type_ref.kind is TypeKind.INTEGER and (type_ref.bits or 0) <= 32:
        return "Int!"
    if type_ref.kind is TypeKind.BOOL:
        return "Boolean!"
    if type_ref.kind is TypeKind.ARRAY and type_ref.element is not None:
        return f"[{graphql_type(type_ref.element)}]!"
    if type_ref.kind in (TypeKind.STRUCT, TypeKind.UNKNOWN):
        return "Text"
    # felts, addresses and wide integers exceed GraphQL Int
    return "String!"


class GraphQLRenderer:
    """Entity schema with one type per event, opt-in via config templates."""

    name = "graphql"
    per_event = False

    def output_path(self, schema: ContractSchema, event: EventDecl | None = None) -> str:
        return f"{contract_dir(schema)}/schema.gql"

    def render(self, schema: ContractSchema, event: EventDecl | None = None) -> str:
        blocks = ["scalar Text\n"]
        for decl in schema.events:
            lines = [f"type {schema.name}{decl.name} {{", "  id: String!"]
            for f in decl.fields:
                name = f"{f.name}_" if f.name == "id" else f.name
                lines.append(f"  {name}: {graphql_type(f.type)}")
            lines.append("}")
            blocks.append("\n".join(lines) + "\n")
        return "\n".join(blocks)
