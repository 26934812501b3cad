"""bpmn-lanes: automatic swimlane layout for BPMN process diagrams."""

__version__ = "0.1.0"
