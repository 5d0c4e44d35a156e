"""Document builders shared by the test modules."""


def make_guideline(nodes, inputs=None, guideline_id="test-guideline"):
    """Minimal legacy guideline document around the given nodes."""
    return {
        "guideline_id": guideline_id,
        "name": "Test guideline",
        "version": "1.0",
        "citation": "Test citation",
        "citation_url": "https://example.org/guideline",
        "inputs": inputs if inputs is not None else [],
        "nodes": nodes,
    }
