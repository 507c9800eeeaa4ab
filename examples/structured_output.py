from pydantic import BaseModel, Field

from agentloop import Agent, AgentConfig, StructuredOutputError


class City(BaseModel):
    city: str = Field(..., description="City name")
    country: str
    population: int


async def main():
    config = AgentConfig(
        model="gpt-4o-mini",
        system_prompt="You answer with JSON only.",
        response_format=City,
    )

    async with await Agent.create(config) as agent:
        try:
            city = await agent.invoke_structured_output(
                "What is the largest city in Slovenia?", City
            )
        except StructuredOutputError as e:
            print(f"Model reply did not match the schema: {e.message}")
            return

        print(f"{city.city}, {city.country}: {city.population:,} people")


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
