"""OpenAI Responses API client for generated text."""

from dataclasses import dataclass

from openai import AsyncOpenAI, OpenAIError

from fooptra.domain.errors import RemoteOperationError
from fooptra.services.tips import TextGenerationClient


@dataclass
class OpenAITextClient(TextGenerationClient):
    """Text generation backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAITextClient":
        """Create an OpenAI text client."""
        return cls(client=AsyncOpenAI(api_key=api_key))

    async def generate(self, *, model: str, instructions: str, prompt: str) -> str:
        """Call OpenAI Responses API and return the output text."""
        try:
            response = await self.client.responses.create(
                model=model,
                instructions=instructions,
                input=prompt,
                store=False,
            )
        except OpenAIError as exc:
            raise RemoteOperationError("OpenAI request failed") from exc
        output_text = response.output_text
        if not output_text:
            raise RemoteOperationError("OpenAI returned an empty response")
        return output_text

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.close()
