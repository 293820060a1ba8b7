from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Any, Dict, Literal


AgentType = Literal["creative", "signals", "sales"]
AgentProtocol = Literal["mcp", "a2a"]
DeploymentStatus = Literal["deployed", "schema_outdated", "missing", "error"]
IssueSeverity = Literal["error", "warning"]


class AgentContact(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None


class Agent(BaseModel):
    """A catalog entry describing one remote agent.

    Unknown keys in catalog files are kept so that API responses echo them.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    schema_: Optional[str] = Field(None, alias="$schema")
    name: str = Field(..., description="Display name")
    url: str = Field(..., description="Canonical agent URL")
    type: AgentType = Field(..., description="Agent role")
    protocol: Optional[AgentProtocol] = Field(None, description="Wire protocol, defaults to mcp")
    description: Optional[str] = None
    capabilities: List[str] = Field(default_factory=list)
    mcp_endpoint: Optional[str] = None
    represents: Optional[List[str]] = None
    contact: Optional[AgentContact] = None
    added_date: Optional[str] = None


class PropertyIdentifier(BaseModel):
    type: str = Field(..., min_length=1, description="Identifier kind, e.g. 'domain' or 'bundle_id'")
    value: str = Field(..., min_length=1)

    def key(self) -> str:
        return f"{self.type}:{self.value}"


class Property(BaseModel):
    """A sellable unit owned by a publisher. Always carries at least one identifier."""
    property_type: str = Field(..., description="domain, app_id, ...")
    name: str
    identifiers: List[PropertyIdentifier] = Field(..., min_length=1)
    tags: Optional[List[str]] = None
    publisher_domain: str


class PropertyMatch(BaseModel):
    property: Property
    agent_url: str
    publisher_domain: str


class AgentAuthorization(BaseModel):
    agent_url: str
    properties: List[Property] = Field(default_factory=list)
    publisher_domains: List[str] = Field(default_factory=list)


class IndexStats(BaseModel):
    total_agents: int = 0
    total_properties: int = 0
    total_identifiers: int = 0


class ValidationResult(BaseModel):
    authorized: bool
    domain: str
    agent_url: str
    checked_at: str = Field(..., description="ISO8601 UTC timestamp")
    source: Optional[str] = Field(None, description="Manifest URL that was read")
    error: Optional[str] = None


class PublisherIssue(BaseModel):
    severity: IssueSeverity
    message: str
    fix: str


class PublisherStatus(BaseModel):
    domain: str
    deployment_status: DeploymentStatus = "missing"
    adagents_file_url: str
    last_checked: str
    issues: List[PublisherIssue] = Field(default_factory=list)
    authorized_agents: List[str] = Field(default_factory=list)
    expected_agents: List[str] = Field(default_factory=list, description="Agents claiming this publisher")
    coverage_percentage: int = Field(0, ge=0, le=100)
    raw_content: Optional[Any] = None


class DeploymentStats(BaseModel):
    total: int = 0
    deployed: int = 0
    schema_outdated: int = 0
    missing: int = 0
    error: int = 0


class CrawlError(BaseModel):
    agent_url: str
    error: str


class CrawlResult(BaseModel):
    total_properties: int = 0
    total_publisher_domains: int = 0
    successful_agents: int = 0
    failed_agents: int = 0
    errors: List[CrawlError] = Field(default_factory=list)


class CrawlerStatus(BaseModel):
    crawling: bool
    last_crawl: Optional[str] = None
    last_result: Optional[CrawlResult] = None
    index_stats: IndexStats


class InvokeResult(BaseModel):
    """Outcome of one remote operation call on an agent."""
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None


class ValidateRequest(BaseModel):
    domain: str = Field(..., min_length=1, description="Publisher domain, scheme optional")
    agent_url: str = Field(..., min_length=1, description="Agent URL to look up in the manifest")


class AgentStats(BaseModel):
    property_count: int = 0
    publisher_count: int = 0
    publishers: List[str] = Field(default_factory=list)
    creative_formats: Optional[int] = Field(None, description="Creative agents only")


class AgentHealth(BaseModel):
    online: bool
    checked_at: str
    response_time_ms: Optional[int] = None
    tools_count: Optional[int] = None
    error: Optional[str] = None


class ToolCapability(BaseModel):
    name: str
    description: str = ""
    input_schema: Dict[str, Any] = Field(default_factory=dict)
    verified_at: str


class StandardOperations(BaseModel):
    """What a sales agent can do, derived from its tool names."""
    can_search_inventory: bool = False
    can_get_availability: bool = False
    can_reserve_inventory: bool = False
    can_get_pricing: bool = False
    can_create_order: bool = False
    can_list_properties: bool = False


class CreativeCapabilities(BaseModel):
    formats_supported: List[str] = Field(default_factory=list)
    can_generate: bool = False
    can_validate: bool = False
    can_preview: bool = False


class SignalsCapabilities(BaseModel):
    audience_types: List[str] = Field(default_factory=list)
    can_match: bool = False
    can_activate: bool = False
    can_get_signals: bool = False


class AgentCapabilityProfile(BaseModel):
    agent_url: str
    protocol: AgentProtocol = "mcp"
    discovered_tools: List[ToolCapability] = Field(default_factory=list)
    standard_operations: Optional[StandardOperations] = None
    creative_capabilities: Optional[CreativeCapabilities] = None
    signals_capabilities: Optional[SignalsCapabilities] = None
    last_discovered: str
    discovery_error: Optional[str] = None


class FormatInfo(BaseModel):
    name: str
    dimensions: Optional[Any] = None
    aspect_ratio: Optional[str] = None
    type: Optional[str] = None
    description: Optional[str] = None


class AgentFormatsProfile(BaseModel):
    agent_url: str
    protocol: AgentProtocol = "mcp"
    formats: List[FormatInfo] = Field(default_factory=list)
    last_fetched: str
    error: Optional[str] = None
