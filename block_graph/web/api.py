"""Read-only HTTP routes over the component graph."""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter, HTTPException, Request

from block_graph.blocks import Block
from block_graph.errors import BlockGraphError, BlockNotFoundError
from block_graph.project import Project

router = APIRouter(prefix="/api")


def _project(request: Request) -> Project:
    return request.app.state.project


def _block_summary(project: Project, block: Block) -> dict[str, Any]:
    def rel(path):
        if path is None:
            return None
        try:
            return str(path.relative_to(project.root))
        except ValueError:
            return str(path)

    return {
        "name": block.name,
        "type": block.type.value,
        "parent": block.parent,
        "mixin": block.mixin,
        "dependencies": list(block.dependencies),
        "libs": list(block.libs),
        "manifest": rel(block.manifest),
        "logic": rel(block.logic),
        "tpl": rel(block.tpl),
        "etpl": rel(block.etpl),
        "styles": [rel(s) for s in block.styles],
    }


async def _call(fn, *args, **kwargs):
    try:
        return await asyncio.to_thread(fn, *args, **kwargs)
    except BlockNotFoundError as e:
        raise HTTPException(404, str(e))
    except BlockGraphError as e:
        raise HTTPException(400, str(e))


@router.get("/blocks")
async def list_blocks(request: Request):
    project = _project(request)
    blocks = await _call(project.blocks.get_all)
    return {
        "count": len(blocks),
        "blocks": [_block_summary(project, blocks[name]) for name in sorted(blocks)],
    }


@router.get("/blocks/{name}")
async def get_block(name: str, request: Request):
    project = _project(request)
    block = await _call(project.blocks.get, name)

    def views():
        return (
            list(block.get_dependencies()),
            block.get_libs(),
        )

    dependencies, libs = await _call(views)
    return {
        **_block_summary(project, block),
        "all_dependencies": dependencies,
        "all_libs": libs,
    }


@router.get("/blocks/{name}/runtime")
async def get_runtime(name: str, request: Request):
    project = _project(request)

    def closure():
        return project.blocks.get(name).get_runtime_dependencies()

    result = await _call(closure)
    return {
        "name": name,
        "runtime": list(result.runtime),
        "parents": list(result.parents),
        "libs": sorted(result.libs),
    }


@router.get("/entries")
async def list_entries(request: Request):
    project = _project(request)
    config = await _call(project.get_build_config)

    def describe():
        return [
            {"name": name, "path": str(entry.path), "parents": entry.parents}
            for name, entry in config.entries.items()
        ]

    return {"entries": await _call(describe)}


@router.get("/entries/union")
async def get_union(request: Request):
    project = _project(request)

    def compute():
        return project.get_build_config().get_union_entry_points()

    result = await _call(compute)
    return {
        "dependencies": result.dependencies,
        "entry": {
            name: [{"name": u.name, "is_parent": u.is_parent}
                   for u in units.values()]
            for name, units in result.entry.items()
        },
    }
