import random
import uuid
from typing import Sequence

from faker import Faker


class Randomizer:
    """
    Utilidades de aleatoriedad basadas en random.Random y Faker.
    Cada instancia tiene su propio generador, asi la semilla controla
    la reproducibilidad sin tocar el estado global de random.
    """

    def __init__(self, seed: int = None, locale: str = "en_US"):
        self.seed = seed
        self.rng = random.Random(seed)
        self.faker = Faker(locale)
        if seed is not None:
            self.faker.seed_instance(seed)

    def choice(self, items: Sequence):
        return self.rng.choice(items)

    def weighted_choice(self, items: Sequence, weights: Sequence[int]):
        """
        Muestreo por peso acumulado. Los pesos son masa relativa.
        """
        return self.rng.choices(items, weights=weights, k=1)[0]

    def int_between(self, low: int, high: int) -> int:
        """Entero uniforme en [low, high], ambos inclusive."""
        if high < low:
            return low
        return self.rng.randint(low, high)

    def uniform(self, low: float, high: float) -> float:
        return self.rng.uniform(low, high)

    def chance(self, probability: float) -> bool:
        return self.rng.random() < probability

    def random(self) -> float:
        return self.rng.random()

    def session_id(self) -> str:
        token = uuid.UUID(int=self.rng.getrandbits(128)).hex[:8]
        return f"sess_{token}"

    # Texto falso
    def word(self) -> str:
        return self.faker.word()

    def sentence(self, words: int = 10) -> str:
        return self.faker.sentence(nb_words=words)

    def paragraphs(self, low: int, high: int, sentences: int = 12, sep: str = "\n\n") -> str:
        count = self.int_between(low, high)
        return sep.join(
            self.faker.paragraph(nb_sentences=sentences) for _ in range(count)
        )

    def first_name(self) -> str:
        return self.faker.first_name()

    def last_name(self) -> str:
        return self.faker.last_name()

    def company(self) -> str:
        return self.faker.company()

    def phone(self) -> str:
        return self.faker.numerify("###-###-####")

    def street(self) -> str:
        return self.faker.street_address()

    def city(self) -> str:
        return self.faker.city()

    def zip_code(self) -> str:
        return self.faker.postcode()

    def product_name(self) -> str:
        adjective = self.faker.word().capitalize()
        noun = self.faker.word().capitalize()
        return f"{adjective} {noun} {self.faker.color_name()}"


def slugify(text: str) -> str:
    text = text.lower()
    text = text.replace(" ", "-")
    text = text.replace("'", "").replace('"', "")
    text = text.replace("&", "and")
    return text
