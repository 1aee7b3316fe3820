from pydantic import BaseModel
from pydantic_settings import BaseSettings

from station_contacts.services.fetch_client import RetryOn, RetryPolicy


class StageOptions(BaseModel):
    delay_ms: int
    timeout_ms: int
    max_retries: int
    retry_delay_ms: int
    retry_on: RetryOn = "any"

    @property
    def delay(self) -> float:
        return self.delay_ms / 1000

    @property
    def timeout(self) -> float:
        return self.timeout_ms / 1000

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            delay=self.retry_delay_ms / 1000,
            retry_on=self.retry_on,
        )


class WebsiteStageOptions(StageOptions):
    delay_ms: int = 1500
    timeout_ms: int = 20000
    max_retries: int = 2
    retry_delay_ms: int = 3000


class SiteContactsStageOptions(StageOptions):
    delay_ms: int = 2500
    timeout_ms: int = 25000
    max_retries: int = 2
    retry_delay_ms: int = 3000
    contact_page_timeout_ms: int = 15000
    contact_page_delay_ms: int = 1000


class FccStageOptions(StageOptions):
    delay_ms: int = 2000
    timeout_ms: int = 30000
    max_retries: int = 3
    retry_delay_ms: int = 2000
    retry_on: RetryOn = "transport"


class Settings(BaseSettings):
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",
    }

    log_level: str = "INFO"
    data_dir: str = "data"
    checkpoint_every: int = 10
    website: WebsiteStageOptions = WebsiteStageOptions()
    site_contacts: SiteContactsStageOptions = SiteContactsStageOptions()
    fcc: FccStageOptions = FccStageOptions()
