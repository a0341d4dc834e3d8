"""Chain-native binary encoders.

One module per wire format: borsh (NEAR), bcs (Aptos), der (Bitcoin
signatures), bitcoin (tx + BIP143), pedersen (StarkNet), cosmos
(protobuf SignDoc) and ton (wallet message body).
"""
