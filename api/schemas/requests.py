from pydantic import BaseModel, Field


class AmountChangeRequest(BaseModel):
	amount: str = Field(..., max_length=32, description='Dollar amount exactly as typed')

	class ConfigDict:
		json_schema_extra = {'example': {'amount': '100.50'}}
