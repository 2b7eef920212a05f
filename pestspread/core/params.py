"""
Spread Parameters
=================
Model type selection and the per-call parameters of the spread engine
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union


class ModelType(Enum):
    """Epidemiological model type"""
    SUSCEPTIBLE_INFECTED = "SI"
    SUSCEPTIBLE_EXPOSED_INFECTED = "SEI"


_MODEL_TYPE_NAMES = {
    "SI": ModelType.SUSCEPTIBLE_INFECTED,
    "SusceptibleInfected": ModelType.SUSCEPTIBLE_INFECTED,
    "susceptible-infected": ModelType.SUSCEPTIBLE_INFECTED,
    "susceptible_infected": ModelType.SUSCEPTIBLE_INFECTED,
    "SEI": ModelType.SUSCEPTIBLE_EXPOSED_INFECTED,
    "SusceptibleExposedInfected": ModelType.SUSCEPTIBLE_EXPOSED_INFECTED,
    "susceptible-exposed-infected": ModelType.SUSCEPTIBLE_EXPOSED_INFECTED,
    "susceptible_exposed_infected": ModelType.SUSCEPTIBLE_EXPOSED_INFECTED,
}


def model_type_from_string(text: Union[str, ModelType, None]) -> ModelType:
    """
    Get the model type for one of its recognized spellings

    Raises:
        ValueError: The text is not a known model type name
    """
    if isinstance(text, ModelType):
        return text
    try:
        return _MODEL_TYPE_NAMES[text]
    except (KeyError, TypeError):
        raise ValueError(f"Invalid model type '{text}' provided") from None


@dataclass
class SpreadParameters:
    """Parameters passed to the engine operations at each step"""

    # Dispersers per infected host per step
    reproductive_rate: float = 4.4

    # Weather
    use_weather: bool = False

    # Cold die-off of the pathogen
    use_lethal_temperature: bool = False
    lethal_temperature: float = -12.87

    # Host mortality
    use_mortality: bool = False
    mortality_rate: float = 0.0
    first_mortality_year: int = 1

    def __post_init__(self):
        if self.reproductive_rate < 0:
            raise ValueError(
                f"Reproductive rate must be non-negative, got {self.reproductive_rate}"
            )
        if not 0.0 <= self.mortality_rate <= 1.0:
            raise ValueError(
                f"Mortality rate must be between 0 and 1, got {self.mortality_rate}"
            )
