"""领域层模型与协议。

包含：
- models: ChatMessage / ChatRequest / ChatResult 以及 CalendarEvent / WeatherPeriod 等规范化记录。
- exceptions: 业务异常类型定义。
"""
