"""领域层模型与协议。

包含：
- models: Message / StreamEvent / ExchangeResult 等统一数据结构。
- conversation: 会话记录以及持久化、视图、危机提示等协作方协议。
- exceptions: 业务异常类型定义。
"""
