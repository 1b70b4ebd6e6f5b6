from __future__ import annotations

from amenhotep.errors import TemplateError
from amenhotep.models import ContractSchema, EventDecl
from amenhotep.targets.base import (
    DEPLOY_FUNCTION,
    DEPLOY_MODULE,
    WRITER_PARAMS,
    contract_dir,
    handler_function,
    handler_module,
    signature,
    ts_identifiers,
)

WRITER_SIGNATURE = f"{{ {', '.join(WRITER_PARAMS)} }}: Parameters<CheckpointWriter>[0]"


class HandlerRenderer:
    name = "handler"
    per_event = True

    def output_path(self, schema: ContractSchema, event: EventDecl | None = None) -> str:
        if event is None:
            raise TemplateError(self.name, "handler output path requires an event")
        return f"{contract_dir(schema)}/{handler_module(event)}.ts"

    def render(self, schema: ContractSchema, event: EventDecl | None = None) -> str:
        if event is None:
            raise TemplateError(self.name, "handler template renders once per event")
        fn_name = handler_function(event)
        field_docs = "".join(f" * {f.name}: {f.type.name}\n" for f in event.fields) or " * (no fields)\n"
        destructure = ""
        if event.fields:
            names = ", ".join(ts_identifiers(f.name for f in event.fields))
            destructure = f"\n  const [{names}] = event.data;\n"
        return f'''// Checkpoint writer for {schema.name}.{event.name} ({schema.source_path})
import type {{ CheckpointWriter }} from '@snapshot-labs/checkpoint';

/**
 * {signature(event.name, event.fields)}
 *
{field_docs} */
export async function {fn_name}({WRITER_SIGNATURE}) {{
  if (!event) return;
{destructure}
  throw new Error('{fn_name} is not implemented yet');
}}
'''


class DeployRenderer:
    """Writer Checkpoint calls once for the contract's deployment transaction."""

    name = "deploy"
    per_event = False

    def output_path(self, schema: ContractSchema, event: EventDecl | None = None) -> str:
        return f"{contract_dir(schema)}/{DEPLOY_MODULE}.ts"

    def render(self, schema: ContractSchema, event: EventDecl | None = None) -> str:
        return f'''// Checkpoint deploy writer for {schema.name} ({schema.source_path})
import type {{ CheckpointWriter }} from '@snapshot-labs/checkpoint';

export async function {DEPLOY_FUNCTION}({WRITER_SIGNATURE}) {{
  throw new Error('{DEPLOY_FUNCTION} is not implemented yet');
}}
'''
