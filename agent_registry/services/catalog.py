from __future__ import annotations

import json
import logging
import os
from typing import Dict, List, Optional

from pydantic import ValidationError

from agent_registry.models.registry import Agent

logger = logging.getLogger(__name__)

AGENT_TYPES = ("creative", "signals", "sales")


class AgentCatalog:
    """Static agent catalog read from <root>/<type>/<name>.json files.

    Agents are keyed "<type>/<name>". The directory's type wins over the
    file's own "type" field.
    """

    def __init__(self, root_dir: str) -> None:
        self.root_dir = root_dir
        self._agents: Dict[str, Agent] = {}

    def load(self) -> int:
        self._agents.clear()
        for agent_type in AGENT_TYPES:
            type_dir = os.path.join(self.root_dir, agent_type)
            if not os.path.isdir(type_dir):
                continue
            for filename in sorted(os.listdir(type_dir)):
                if not filename.endswith(".json"):
                    continue
                path = os.path.join(type_dir, filename)
                try:
                    with open(path, "r", encoding="utf-8") as f:
                        payload = json.load(f)
                    if isinstance(payload, dict):
                        payload["type"] = agent_type
                    agent = Agent.model_validate(payload)
                except (OSError, ValueError, ValidationError) as exc:
                    logger.error("Skipping agent file %s: %s", path, exc)
                    continue
                self._agents[f"{agent_type}/{filename[:-len('.json')]}"] = agent
        logger.info("Loaded %d agents from %s", len(self._agents), self.root_dir)
        return len(self._agents)

    def add(self, key: str, agent: Agent) -> None:
        self._agents[key] = agent

    def list_agents(self, agent_type: Optional[str] = None) -> List[Agent]:
        if agent_type:
            return [a for k, a in self._agents.items() if k.startswith(f"{agent_type}/")]
        return list(self._agents.values())

    def get_agent(self, key: str) -> Optional[Agent]:
        return self._agents.get(key)
