from fastapi import Request

from agent_registry.services.container import Services


def get_services(request: Request) -> Services:
    return request.app.state.services
