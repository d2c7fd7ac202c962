# flowengine/samples.py
from .models import GraphDocument

CONTENT_ASSISTANT_PROMPT = (
    "You are a helpful assistant specialized in content creation. "
    "Provide detailed, creative, and well-structured responses."
)


def build_test_agent() -> GraphDocument:
    """Input -> GPT -> Output, the agent created for demos."""
    return GraphDocument.model_validate({
        "nodes": [
            {
                "id": "input-1",
                "type": "inputNode",
                "position": {"x": 100, "y": 200},
                "data": {
                    "label": "User Input",
                    "placeholder": "What would you like to know?",
                    "description": "Enter your question here",
                    "required": True,
                },
            },
            {
                "id": "gpt-1",
                "type": "gptNode",
                "position": {"x": 400, "y": 200},
                "data": {
                    "label": "AI Processing",
                    "model": "gpt-4o",
                    "systemPrompt": CONTENT_ASSISTANT_PROMPT,
                    "temperature": 0.7,
                    "maxTokens": 2000,
                },
            },
            {
                "id": "output-1",
                "type": "outputNode",
                "position": {"x": 700, "y": 200},
                "data": {"label": "Response", "format": "markdown"},
            },
        ],
        "edges": [
            {"id": "edge-input-gpt", "source": "input-1", "target": "gpt-1"},
            {"id": "edge-gpt-output", "source": "gpt-1", "target": "output-1"},
        ],
        "viewport": {"x": 0, "y": 0, "zoom": 1},
    })
