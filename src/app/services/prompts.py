from src.app.domain.models import SeedRecord

VALID_DIET_TYPES = (
    "vegetarian",
    "vegan",
    "gluten-free",
    "dairy-free",
    "keto",
    "paleo",
    "omnivore",
    "pescatarian",
    "none",
)

FREEFORM_SYSTEM_PROMPT = (
    "You are a helpful recipe assistant that generates detailed recipes in JSON format."
)

FREEFORM_USER_PROMPT = """Generate a recipe based on the following prompt.

IMPORTANT: Your response must be a valid JSON object with these exact keys:
- title (string): The name of the recipe
- description (string): A brief description
- ingredients (array of strings): List of ingredients
- instructions (array of strings): Step-by-step instructions
- cuisine_type (string): e.g. italian, mexican, chinese, indian, japanese, thai, american, mediterranean, french
- diet_type (string): MUST be one of: {diet_types}
- cooking_time (string): Format as "X mins" or "X hours" or "X hours Y mins"
- nutrition (object, optional): keys 'calories', 'protein', 'fat', 'carbohydrates'

Prompt: {prompt}

Respond ONLY with the JSON object, no other text."""

SEED_SYSTEM_PROMPT = (
    "You are a recipe formatter. Always answer with these exact section headers "
    "in this order: DESCRIPTION, CUISINE, DIET, COOKING TIME, NUTRITION. "
    "Each section starts on a new line with its header in uppercase followed by a colon."
)

SEED_USER_PROMPT = """Write a fun, appetizing, internet-style introduction for this recipe (at least 2 sentences, do not repeat the title). Answer in exactly this format, each field on its own line:
DESCRIPTION: [the introduction]
CUISINE: [guess the cuisine, e.g. british, italian]
DIET: [guess the diet, one of: {diet_types}]
COOKING TIME: [guess the total time, e.g. 30 mins]
NUTRITION: [guess as: 400 calories, 30g protein, 10g fat, 50g carbohydrates]
Provide nothing else.

Title: {title}
Category: {category}
Area: {area}
Instructions: {instructions}
Ingredients: {ingredients}"""


def build_freeform_prompt(prompt: str) -> str:
    return FREEFORM_USER_PROMPT.format(
        diet_types=", ".join(VALID_DIET_TYPES),
        prompt=prompt.strip(),
    )


def build_seed_prompt(seed: SeedRecord) -> str:
    return SEED_USER_PROMPT.format(
        diet_types=", ".join(VALID_DIET_TYPES),
        title=seed.title,
        category=seed.category or "unknown",
        area=seed.area or "unknown",
        instructions=seed.instructions.strip(),
        ingredients=", ".join(seed.ingredients),
    )
