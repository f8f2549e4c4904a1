"""
Dependency Injection for the action runtime API.

Manage request handler dependencies using FastAPI Depends.
"""

from typing import Annotated

from fastapi import Depends, Request

from ..core.deployment import DeploymentState
from ..services.dispatcher import InvocationDispatcher
from ..services.initializer import ActionInitializer
from ..services.translator import ResponseTranslator


def get_deployment_state(request: Request) -> DeploymentState:
    return request.app.state.deployment_state


def get_initializer(request: Request) -> ActionInitializer:
    return request.app.state.initializer


def get_dispatcher(request: Request) -> InvocationDispatcher:
    return request.app.state.dispatcher


def get_translator(request: Request) -> ResponseTranslator:
    return request.app.state.translator


# Service Dependency Type Aliases
DeploymentStateDep = Annotated[DeploymentState, Depends(get_deployment_state)]
InitializerDep = Annotated[ActionInitializer, Depends(get_initializer)]
DispatcherDep = Annotated[InvocationDispatcher, Depends(get_dispatcher)]
TranslatorDep = Annotated[ResponseTranslator, Depends(get_translator)]
