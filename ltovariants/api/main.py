# LTO Variants - Link-time optimization mode propagation for build graphs
# Copyright (c) 2025 Matt Varendorff
# SPDX-License-Identifier: BSL-1.0

"""FastAPI application resolving LTO variants for posted build graphs."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException

from ltovariants.errors import GraphError, LTOConfigurationError
from ltovariants.flags import lto_flags
from ltovariants.graph import ModuleGraph
from ltovariants.models import LTOPolicy
from ltovariants.mutators import resolve, run_lto_mutators

from .models import (
    ConfigurationErrorResponse,
    FlagsResponse,
    NodeResponse,
    ResolveRequest,
    ResolveResponse,
)

logger = logging.getLogger(__name__)

# Policy read from the server's environment at startup
_policy: Optional[LTOPolicy] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global _policy

    _policy = LTOPolicy()
    logger.info(f"LTO policy loaded: {_policy!r}")

    yield

    _policy = None


app = FastAPI(
    title="LTO Variants API",
    description="Resolve link-time optimization modes and variants for build graphs",
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "LTO Variants API",
        "version": "0.1.0",
        "description": "Resolve link-time optimization modes and variants for build graphs",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


def _build_graph(request: ResolveRequest) -> ModuleGraph:
    graph = ModuleGraph()
    for item in request.modules:
        graph.add_module(item.name, lto=item.lto, context=item.context)
    for dep in request.dependencies:
        graph.add_dependency(dep.source, dep.target, dep.kind)
    return graph


@app.post("/resolve", response_model=ResolveResponse)
async def resolve_graph(request: ResolveRequest):
    """Propagate LTO requirements through a graph and synthesize variants.

    Modules with contradictory LTO settings are reported in ``errors``; the
    rest of the graph is still resolved.
    """
    if _policy is None:
        raise HTTPException(status_code=503, detail="Policy not initialized")

    overrides = request.policy.model_dump(exclude_none=True)
    policy = _policy.model_copy(update=overrides) if overrides else _policy

    try:
        graph = _build_graph(request)
        result = run_lto_mutators(graph, policy)
    except GraphError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    nodes = []
    for index, module in enumerate(graph.modules):
        node = NodeResponse(
            key=module.key,
            name=module.name,
            clone=module.is_clone,
            prevent_install=module.prevent_install,
            dependencies=[dep.key for dep in graph.dependencies(index)],
        )
        try:
            resolution = resolve(module, policy)
        except LTOConfigurationError as e:
            node.error = e.message
            nodes.append(node)
            continue
        node.mode = resolution.mode
        node.explicit = resolution.explicit
        if request.include_flags:
            flags = lto_flags(module, policy)
            node.flags = FlagsResponse(
                cflags=flags.cflags, asflags=flags.asflags, ldflags=flags.ldflags
            )
        nodes.append(node)

    return ResolveResponse(
        nodes=nodes,
        clones_created=result.synthesis.clones_created,
        requests_recorded=result.propagation.requests_recorded,
        edges_retargeted=result.synthesis.edges_retargeted,
        errors=[
            ConfigurationErrorResponse(module=e.module, message=e.message)
            for e in result.errors
        ],
    )


def run():
    """Run the API server."""
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()
