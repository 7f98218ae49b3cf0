"""Fill-out runtime: flow controller, renderer contract, completion pipeline."""

from formflow.runtime.completion import CompletionPipeline, run_completion_actions
from formflow.runtime.flow import FlowController, NavigationResult
from formflow.runtime.renderer import RenderResult, render

__all__ = [
    "CompletionPipeline",
    "FlowController",
    "NavigationResult",
    "RenderResult",
    "render",
    "run_completion_actions",
]
