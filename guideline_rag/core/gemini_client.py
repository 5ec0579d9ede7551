import asyncio
import io
from typing import Any, Dict, List, Optional, Union

from google import genai
from google.genai import types

from guideline_rag.core.exceptions import APIClientError, APITimeoutError, ConfigurationError
from guideline_rag.utils.logging import get_logger

LOGGER = get_logger(__name__)


class GeminiClient:
    """Wrapper for the Google Gemini API: File API uploads and content generation.

    Uploads wait for the file to become active; every other method issues
    exactly one remote call. Callers own retry policy.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        timeout: Optional[float] = 120.0,
        file_ready_timeout: float = 300.0,
        file_poll_interval: float = 2.0,
    ):
        """Initialize Gemini client.

        Args:
            api_key: Gemini API key
            model: Model name used for generation
            timeout: Default generation timeout in seconds (None disables it)
            file_ready_timeout: Seconds to wait for an upload to leave PROCESSING
            file_poll_interval: Seconds between file status checks

        Raises:
            ConfigurationError: If no API key is given
            APIClientError: If the SDK client cannot be created
        """
        if not api_key:
            raise ConfigurationError("GEMINI_API_KEY is not set")

        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.file_ready_timeout = file_ready_timeout
        self.file_poll_interval = file_poll_interval

        try:
            self.client = genai.Client(api_key=self.api_key)
            LOGGER.info(f"Initialized Gemini client with model {self.model}")
        except Exception as e:
            LOGGER.error(f"Failed to initialize Gemini client: {e}")
            raise APIClientError(f"Failed to initialize Gemini client: {e}", original_error=e)

    async def upload_file(
        self,
        content: bytes,
        mime_type: str,
        display_name: Optional[str] = None,
    ) -> types.File:
        """Upload bytes to the Gemini File API.

        Args:
            content: Raw document bytes
            mime_type: Declared MIME type of the document
            display_name: Human readable name shown in the File API

        Returns:
            The registered file, carrying ``uri`` and ``name``

        Raises:
            APIClientError: If the upload fails, the API marks the file failed
                or it is still processing after ``file_ready_timeout``
        """
        try:
            uploaded = await self.client.aio.files.upload(
                file=io.BytesIO(content),
                config=types.UploadFileConfig(mime_type=mime_type, display_name=display_name),
            )
        except Exception as e:
            LOGGER.error(f"Gemini file upload failed: {e}", exc_info=True)
            raise APIClientError(f"Gemini file upload failed: {e}", original_error=e)

        if uploaded.state == types.FileState.PROCESSING:
            uploaded = await self._wait_until_active(uploaded)

        if uploaded.state == types.FileState.FAILED:
            error = getattr(uploaded, "error", None)
            raise APIClientError(f"Gemini rejected file {uploaded.name}: {error}")
        if not uploaded.uri:
            raise APIClientError(f"Gemini returned no URI for file {uploaded.name}")

        LOGGER.info(f"Uploaded to Gemini: {uploaded.uri}")
        return uploaded

    async def _wait_until_active(self, uploaded: types.File) -> types.File:
        """Poll the File API until the file leaves the ``PROCESSING`` state."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.file_ready_timeout

        while uploaded.state == types.FileState.PROCESSING:
            if loop.time() >= deadline:
                raise APIClientError(
                    f"Gemini file {uploaded.name} still processing after "
                    f"{self.file_ready_timeout} seconds"
                )
            LOGGER.debug(f"Waiting for Gemini file {uploaded.name} to become active")
            await asyncio.sleep(self.file_poll_interval)
            try:
                uploaded = await self.client.aio.files.get(name=uploaded.name)
            except Exception as e:
                raise APIClientError(f"Gemini file status check failed: {e}", original_error=e)

        return uploaded

    async def delete_file(self, name: str) -> None:
        """Delete a previously uploaded file by its ``files/...`` name."""
        try:
            await self.client.aio.files.delete(name=name)
        except Exception as e:
            raise APIClientError(f"Gemini file delete failed: {e}", original_error=e)

    @staticmethod
    def file_part(file_uri: str, mime_type: str) -> types.Part:
        """Reference an uploaded file inside generation contents."""
        return types.Part.from_uri(file_uri=file_uri, mime_type=mime_type)

    async def generate_content(
        self,
        contents: Union[str, List[Union[str, types.Part, Dict[str, Any]]]],
        system_instruction: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """Generate content using the Gemini model.

        Args:
            contents: Input content (string or list of parts)
            system_instruction: Optional system instruction
            generation_config: Optional overrides (temperature, max_output_tokens)
            timeout: Seconds before giving up; defaults to the client timeout

        Returns:
            Generated text response

        Raises:
            APITimeoutError: If the call exceeds the timeout
            APIClientError: If generation fails or returns no text
        """
        config = types.GenerateContentConfig(temperature=0.0)

        if generation_config:
            if "temperature" in generation_config:
                config.temperature = generation_config["temperature"]
            if "max_output_tokens" in generation_config:
                config.max_output_tokens = generation_config["max_output_tokens"]

        if system_instruction:
            config.system_instruction = system_instruction

        effective_timeout = timeout if timeout is not None else self.timeout

        try:
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=self.model,
                    contents=contents,
                    config=config,
                ),
                timeout=effective_timeout,
            )
        except asyncio.TimeoutError as e:
            LOGGER.error(f"Gemini generation timed out after {effective_timeout}s")
            raise APITimeoutError(
                f"Gemini generation timed out after {effective_timeout} seconds",
                original_error=e,
            )
        except Exception as e:
            LOGGER.error(f"Gemini generation failed: {e}", exc_info=True)
            raise APIClientError(f"Gemini generation failed: {e}", original_error=e)

        if not response.text:
            feedback = getattr(response, "prompt_feedback", None)
            block_reason = getattr(feedback, "block_reason", None)
            LOGGER.warning(f"Empty response from Gemini (block reason: {block_reason})")
            if block_reason:
                raise APIClientError(f"Gemini returned no answer: prompt blocked ({block_reason})")
            raise APIClientError("Gemini returned an empty response")

        return response.text
