"""Parsers for BPMN process definitions."""

from bpmn_lanes.parser.bpmn import BpmnParseError, parse_bpmn_file, parse_bpmn_xml
from bpmn_lanes.parser.model import Edge, Lane, Node, Pool, ProcessGraph

__all__ = [
    "BpmnParseError",
    "Edge",
    "Lane",
    "Node",
    "Pool",
    "ProcessGraph",
    "parse_bpmn_file",
    "parse_bpmn_xml",
]
