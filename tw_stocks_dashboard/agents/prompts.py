"""
Prompt templates for the stock analyst.

Single Responsibility: only stores prompt text.
"""

STOCK_ANALYSIS_PROMPT = """\
你是一位專精台灣股市的資深分析師。今天是 {today}。

請分析以下台股數據並撰寫專業分析報告：
股票代號/名稱: {stock_id} {name}
當前價格: {price}
今日漲跌: {change} ({pct}%)
本益比 (PER): {per}, 股淨比 (PBR): {pbr}
法人動向 (最後交易日 {inst_date}): 外資: {foreign}, 投信: {trust}, 自營商: {dealer}
最近 {bars} 日歷史走勢: {history}

任務要求：
1. 提供技術面總結（使用台灣繁體中文專業財經用語）。
2. 基於本益比/股淨比評估財務健康度。
3. 分析法人籌碼情緒。
4. 預測未來 3 日價格走勢（附帶邏輯說明），每日提供預估收盤價與高低區間。
5. 給出一個 0-100 的 AI 綜合評分。
6. 根據籌碼特性，建議 3 家可能正在佈局的活躍主力券商名稱，標示買超或賣超。
"""

# Appended when the model cannot enforce a schema natively.
JSON_FORMAT_INSTRUCTIONS = """\

請只輸出一個 JSON 物件，不要加入任何其他文字，格式如下：
{"summary": str, "financial": str, "institutional": str,
  "prediction": {"days": [{"date": str, "price": number, "low": number, "high": number}]},
  "score": number,
  "brokerages": [{"name": str, "amount": number, "type": "買超" | "賣超"}]}
"""
