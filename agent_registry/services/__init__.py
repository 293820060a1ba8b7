"""Discovery and authorization services.

Structure:
- cache.py: TTL cache shared by the services below
- property_index.py: agent <-> property identifier index
- agent_client.py / agent_responses.py: calling agents and parsing their answers
- crawler.py: periodic, single-flight sweep that fills the index
- validator.py: single agent lookup in a publisher's adagents.json
- publisher_tracker.py: adagents.json deployment status and coverage
- health.py / capabilities.py / formats.py: agent liveness plus capability and format discovery
- catalog.py: static agent catalog loaded from disk
- container.py: wiring of the above for the API
"""
